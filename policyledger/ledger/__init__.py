"""
PolicyLedger Journal - Signed Append-Only Operation Log

Every committed policy and claim operation is written here before it
is applied to in-memory state.
"""

from policyledger.ledger.journal import (
    GENESIS_HASH,
    Journal,
    JournalEntry,
    RecordType,
)
from policyledger.ledger.replay import ChainViolation, JournalReplay, ReplaySummary

__all__ = [
    "GENESIS_HASH",
    "Journal",
    "JournalEntry",
    "RecordType",
    "JournalReplay",
    "ReplaySummary",
    "ChainViolation",
]
