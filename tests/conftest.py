"""
Shared fixtures for the PolicyLedger test suite.

Amounts in tests use sub_unit_factor=1 so stored values equal the
values passed in, unless a test builds its own config.
"""

import pytest

from policyledger import LedgerConfig, LedgerRuntime
from policyledger.core.config import JournalConfig
from policyledger.core.crypto import Ed25519KeyManager
from policyledger.core.time import MonotonicClock


FIXED_TIME = 1_700_000_000

ARBITER = "owner"
HOLDER  = "holder-1"
ALICE   = "alice"
BOB     = "bob"


def fixed_clock() -> MonotonicClock:
    return MonotonicClock(lambda: FIXED_TIME)


def make_config(**overrides) -> LedgerConfig:
    params = dict(
        arbiter=         ARBITER,
        tax_percent=     10,
        processing_fee=  5,
        sub_unit_factor= 1,
    )
    params.update(overrides)
    return LedgerConfig(**params)


@pytest.fixture
def config() -> LedgerConfig:
    return make_config()


@pytest.fixture
def runtime(config) -> LedgerRuntime:
    return LedgerRuntime.from_config(config, clock=fixed_clock())


@pytest.fixture
def registry(runtime):
    return runtime.registry


@pytest.fixture
def engine(runtime):
    return runtime.engine


@pytest.fixture
def key() -> Ed25519KeyManager:
    return Ed25519KeyManager.generate()


@pytest.fixture
def journal_path(tmp_path):
    return tmp_path / "journal.jsonl"


@pytest.fixture
def journaled_runtime(journal_path, key) -> LedgerRuntime:
    config = make_config(journal=JournalConfig(path=journal_path))
    return LedgerRuntime.from_config(config, clock=fixed_clock(), key_manager=key)


def create(registry, caller=HOLDER, name="Home", description="Home cover",
           coverage=100, premium=10):
    return registry.create_policy(name, description, coverage, premium, caller=caller)
