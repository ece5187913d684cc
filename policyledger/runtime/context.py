"""
Runtime wiring for PolicyLedger.

LedgerRuntime builds one shared LedgerState and hands it to the Policy
Registry and the Claim Settlement Engine, together with the fund sink
and (optionally) a signed operation journal.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Optional

from policyledger.core.config import LedgerConfig
from policyledger.core.crypto import Ed25519KeyManager
from policyledger.core.exceptions import LedgerError, TransferError
from policyledger.core.models import Transfer
from policyledger.core.state import LedgerState
from policyledger.ledger.journal import Journal, JournalEntry, RecordType
from policyledger.ledger.replay import JournalReplay
from policyledger.registry.registry import PolicyRegistry
from policyledger.settlement.engine import ClaimSettlementEngine
from policyledger.settlement.treasury import FundTransferSink, Treasury


logger = logging.getLogger(__name__)


@dataclass
class LedgerRuntime:
    """A fully wired ledger instance."""

    config:   LedgerConfig
    state:    LedgerState
    registry: PolicyRegistry
    engine:   ClaimSettlementEngine
    treasury: FundTransferSink
    journal:  Optional[Journal] = None

    @classmethod
    def from_config(
        cls,
        config:      LedgerConfig,
        treasury:    Optional[FundTransferSink] = None,
        clock:       Optional[Callable[[], int]] = None,
        key_manager: Optional[Ed25519KeyManager] = None,
    ) -> "LedgerRuntime":
        """
        Create a runtime from configuration.

        When config.journal is set, operations are journaled to its path,
        signed with key_manager, the key at journal.key_path, or a fresh key
        (saved to key_path when one is configured). An existing journal at
        that path is verified and replayed first, so the runtime resumes
        where the previous one stopped. The default Treasury is rebuilt
        from the journaled deposits and payouts; a caller-supplied sink is
        assumed to hold its own balances and is left alone.
        """
        journal = None
        entries = []
        if config.journal is not None:
            if key_manager is None:
                if config.journal.key_path is not None:
                    key_manager = Ed25519KeyManager.load_or_generate(config.journal.key_path)
                else:
                    key_manager = Ed25519KeyManager.generate()
            if config.journal.path.exists():
                entries = _load_entries(config.journal.path, verify=True)
            journal = Journal(
                key_manager=  key_manager,
                journal_path= config.journal.path,
                writer_id=    config.journal.writer_id,
            )

        if treasury is None:
            treasury = _restore_treasury(entries)
        # Journal is attached after the replay so replayed entries are not re-appended.
        state    = LedgerState(config)

        runtime = cls(
            config=   config,
            state=    state,
            registry= PolicyRegistry(state, treasury, clock=clock),
            engine=   ClaimSettlementEngine(state, treasury),
            treasury= treasury,
            journal=  journal,
        )
        for entry in entries:
            runtime.apply(entry.record_type, entry.payload)
        state.journal = journal

        if entries:
            logger.info(
                "resumed %d journal entries from %s", len(entries), config.journal.path
            )
        return runtime

    @classmethod
    def replay(
        cls,
        config:       LedgerConfig,
        journal_path: Path,
        verify:       bool = True,
    ) -> "LedgerRuntime":
        """
        Rebuild ledger state from a journal file.

        Entries are applied in order through the registry and engine apply
        paths. Funds are not moved again. The returned runtime has no
        journal attached, so it is read-only with respect to the file.

        Raises LedgerError if verify is set and the journal has violations.
        """
        entries = _load_entries(journal_path, verify=verify)

        runtime = cls.from_config(replace(config, journal=None))
        for entry in entries:
            runtime.apply(entry.record_type, entry.payload)

        logger.info("replayed %d journal entries from %s", len(entries), journal_path)
        return runtime

    def apply(self, record_type: str, payload: dict) -> None:
        """Route a journaled operation to the component that owns it."""
        if self.registry.handles(record_type):
            self.registry.apply(record_type, payload)
        elif self.engine.handles(record_type):
            self.engine.apply(record_type, payload)
        else:
            raise LedgerError(f"No handler for record_type '{record_type}'")

    def __repr__(self) -> str:
        return (
            f"LedgerRuntime("
            f"arbiter={self.config.arbiter!r}, "
            f"total_policies={self.state.total_policies})"
        )


def _load_entries(journal_path: Path, verify: bool) -> List[JournalEntry]:
    replay = JournalReplay()
    replay.load(journal_path)
    if verify:
        summary = replay.verify()
        if not summary.valid:
            first = summary.violations[0]
            raise LedgerError(
                f"Journal failed verification: {first.violation_type} "
                f"at sequence {first.at_sequence}",
                {"violations": len(summary.violations)},
            )
    return replay.entries


def _restore_treasury(entries: List[JournalEntry]) -> Treasury:
    """Re-run the fund movements recorded in entries against a fresh Treasury."""
    treasury = Treasury()
    for entry in entries:
        payload = entry.payload
        try:
            if entry.record_type == RecordType.POLICY_PURCHASED:
                treasury.deposit(payload["buyer"], payload["funds"])
            elif entry.record_type == RecordType.CLAIM_FILED:
                treasury.deposit(payload["claim"]["claimant"], payload["escrow"])
            elif entry.record_type == RecordType.CLAIM_SETTLED:
                treasury.transfer([
                    Transfer(destination=payload["claimant"], amount=payload["payout"]),
                    Transfer(destination=payload["arbiter"], amount=payload["fee"]),
                ])
        except TransferError as exc:
            raise LedgerError(
                f"Journal payouts exceed journaled deposits at sequence {entry.sequence}; "
                "supply a funded treasury",
                {"sequence": entry.sequence},
            ) from exc
    return treasury
