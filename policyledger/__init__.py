"""
policyledger/__init__.py

PolicyLedger: Insurance Policy Registry and Claim Settlement Ledger

Policies are created, bought, updated and soft-deleted through the
PolicyRegistry. Claims are filed against policies with an escrow deposit
and settled by a single arbiter through the ClaimSettlementEngine, which
splits each payout into claimant share and processing fee. Committed
operations can be written to a signed, hash-chained journal and replayed.
"""

__version__ = "0.3.0"

from policyledger.core.config import JournalConfig, LedgerConfig
from policyledger.core.exceptions import (
    AlreadyPurchasedError,
    AlreadySettledError,
    AuthorizationError,
    ClaimIndexError,
    ConfigurationError,
    DuplicateClaimError,
    InsufficientFundsError,
    LedgerError,
    NotFoundError,
    PolicyLedgerError,
    TransferError,
    ValidationError,
)
from policyledger.core.models import Claim, Policy, Transfer
from policyledger.registry import PolicyRegistry
from policyledger.settlement import ClaimSettlementEngine, Treasury
from policyledger.runtime import LedgerRuntime

__all__ = [
    # Runtime and components
    "LedgerRuntime",
    "LedgerConfig",
    "JournalConfig",
    "PolicyRegistry",
    "ClaimSettlementEngine",
    "Treasury",
    # Records
    "Policy",
    "Claim",
    "Transfer",
    # Errors
    "PolicyLedgerError",
    "ValidationError",
    "ConfigurationError",
    "NotFoundError",
    "ClaimIndexError",
    "AuthorizationError",
    "AlreadyPurchasedError",
    "DuplicateClaimError",
    "InsufficientFundsError",
    "TransferError",
    "AlreadySettledError",
    "LedgerError",
]
