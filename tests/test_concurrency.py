"""
tests/test_concurrency.py

Operations from many threads against one runtime must stay atomic:
no duplicate policy ids, no double purchase, no second claim.

Run:
    pytest tests/test_concurrency.py -v --tb=short
"""

import threading

from policyledger import (
    AlreadyPurchasedError,
    DuplicateClaimError,
    LedgerRuntime,
)
from policyledger.ledger import JournalReplay

from conftest import create, fixed_clock, make_config


THREADS     = 8
PER_THREAD  = 25


def run_threads(target, count=THREADS):
    threads = [threading.Thread(target=target) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


class TestConcurrency:

    def test_concurrent_creates_get_unique_ids(self, journaled_runtime, journal_path):
        registry = journaled_runtime.registry
        ids, errors = [], []
        ids_lock = threading.Lock()

        def create_many():
            try:
                for _ in range(PER_THREAD):
                    policy = create(registry)
                    with ids_lock:
                        ids.append(policy.policy_id)
            except Exception as e:
                errors.append(str(e))

        run_threads(create_many)

        assert errors == []
        assert sorted(ids) == list(range(1, THREADS * PER_THREAD + 1))
        assert registry.total_policies == THREADS * PER_THREAD

        replay = JournalReplay()
        replay.load(journal_path)
        summary = replay.verify()
        assert summary.valid
        assert summary.total_entries == THREADS * PER_THREAD

    def test_concurrent_purchase_accepted_once(self):
        runtime = LedgerRuntime.from_config(make_config(), clock=fixed_clock())
        policy  = create(runtime.registry)
        outcomes = []

        def buy():
            try:
                runtime.registry.purchase_policy(
                    policy.policy_id, caller="same-buyer", attached_funds=10,
                )
                outcomes.append("ok")
            except AlreadyPurchasedError:
                outcomes.append("dup")

        run_threads(buy)

        assert outcomes.count("ok") == 1
        assert outcomes.count("dup") == THREADS - 1
        assert runtime.registry.get_purchases("same-buyer") == [policy.policy_id]
        assert runtime.treasury.balance == 10

    def test_concurrent_claims_accepted_once(self):
        runtime = LedgerRuntime.from_config(make_config(), clock=fixed_clock())
        policy  = create(runtime.registry, coverage=100)
        outcomes = []

        def claim():
            try:
                runtime.engine.file_claim(
                    policy.policy_id, 50, caller="claimant", attached_funds=110,
                )
                outcomes.append("ok")
            except DuplicateClaimError:
                outcomes.append("dup")

        run_threads(claim)

        assert outcomes.count("ok") == 1
        assert len(runtime.engine.get_claims(policy.policy_id)) == 1
