"""
policyledger/ledger/journal.py

Operation Journal - append-only, hash-chained, Ed25519-signed JSONL.

One entry per committed ledger operation. append() MUST, in this order:
  1. Acquire lock
  2. Create the entry with prev_hash from the last entry
  3. Sign it
  4. Assert chain invariants - prev_hash, sequence
  5. Append one JSON line
  6. Advance internal state - only after confirmed write

Chain rule:
    prev_hash = SHA-256(JCS(prev.to_chain_dict()))
    first entry prev_hash = GENESIS_HASH ("0" * 64)
"""

import json
import logging
import threading
import uuid
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from policyledger.core.canonical import canonical_hash, canonicalize
from policyledger.core.crypto import Ed25519KeyManager
from policyledger.core.exceptions import LedgerError
from policyledger.core.time import journal_timestamp


logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


class RecordType:
    """Journal record_type constants. The only valid values."""
    POLICY_CREATED   = "policy_created"
    POLICY_UPDATED   = "policy_updated"
    POLICY_DELETED   = "policy_deleted"
    POLICY_PURCHASED = "policy_purchased"
    CLAIM_FILED      = "claim_filed"
    CLAIM_SETTLED    = "claim_settled"


VALID_RECORD_TYPES = frozenset({
    RecordType.POLICY_CREATED,
    RecordType.POLICY_UPDATED,
    RecordType.POLICY_DELETED,
    RecordType.POLICY_PURCHASED,
    RecordType.CLAIM_FILED,
    RecordType.CLAIM_SETTLED,
})


@dataclass
class JournalEntry:
    """A single signed journal line."""
    record_id:         str
    record_type:       str
    writer_id:         str
    signer_public_key: str
    sequence:          int
    timestamp:         str
    prev_hash:         str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    @classmethod
    def create(
        cls,
        record_type:       str,
        writer_id:         str,
        signer_public_key: str,
        sequence:          int,
        payload:           Dict[str, Any],
        prev:              Optional["JournalEntry"] = None,
    ) -> "JournalEntry":
        """Create an unsigned entry chained to prev."""
        if record_type not in VALID_RECORD_TYPES:
            raise LedgerError(
                f"Invalid record_type '{record_type}'",
                {"valid": sorted(VALID_RECORD_TYPES)},
            )
        if not isinstance(payload, dict):
            raise LedgerError(
                f"payload must be dict, got {type(payload).__name__}"
            )
        return cls(
            record_id=         f"pl-{uuid.uuid4()}",
            record_type=       record_type,
            writer_id=         writer_id,
            signer_public_key= signer_public_key,
            sequence=          sequence,
            timestamp=         journal_timestamp(),
            prev_hash=         cls.chain_hash(prev),
            payload=           payload,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        """Deserialize a JSONL line dict. Raises KeyError on a missing field."""
        return cls(
            record_id=         data["record_id"],
            record_type=       data["record_type"],
            writer_id=         data["writer_id"],
            signer_public_key= data["signer_public_key"],
            sequence=          data["sequence"],
            timestamp=         data["timestamp"],
            prev_hash=         data["prev_hash"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    def to_chain_dict(self) -> Dict[str, Any]:
        """Every field except the signature. Signed and chained as-is."""
        return {
            "payload":           self.payload,
            "prev_hash":         self.prev_hash,
            "record_id":         self.record_id,
            "record_type":       self.record_type,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
            "writer_id":         self.writer_id,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_chain_dict()
        d["signature"] = self.signature
        return d

    @staticmethod
    def chain_hash(prev: Optional["JournalEntry"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_chain_dict())

    def sign(self, key_manager: Ed25519KeyManager) -> "JournalEntry":
        self.signature = key_manager.sign(canonicalize(self.to_chain_dict()))
        return self

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return Ed25519KeyManager.verify_detached(
            canonicalize(self.to_chain_dict()),
            self.signature,
            self.signer_public_key,
        )

    def verify_chain(self, prev: Optional["JournalEntry"]) -> bool:
        return self.prev_hash == self.chain_hash(prev)


class Journal:
    """
    Synchronous journal writer.

    Thread-safe via internal lock (single-process only).
    State survives process restart by reading the last line on __init__.
    """

    def __init__(
        self,
        key_manager:  Ed25519KeyManager,
        journal_path: Path,
        writer_id:    str = "policyledger",
    ) -> None:
        self.key_manager  = key_manager
        self.writer_id    = writer_id
        self.journal_path = Path(journal_path)
        self.journal_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock:       threading.Lock         = threading.Lock()
        self._sequence:   int                    = 0
        self._last_entry: Optional[JournalEntry] = None

        self._restore_state()
        logger.info(
            "journal %s opened at seq=%d signer=%s",
            self.journal_path, self._sequence, self.key_manager.fingerprint,
        )

    # ── Public API ────────────────────────────────────────────

    def append(self, record_type: str, payload: Dict[str, Any]) -> JournalEntry:
        """
        Append one signed entry. Raises LedgerError on invariant violation
        or write failure; the caller must treat that as a failed operation.
        """
        with self._lock:
            entry = JournalEntry.create(
                record_type=       record_type,
                writer_id=         self.writer_id,
                signer_public_key= self.key_manager.public_key_hex,
                sequence=          self._sequence,
                payload=           payload,
                prev=              self._last_entry,
            ).sign(self.key_manager)

            self._assert_chain_invariants(entry)
            self._write(entry)

            self._sequence  += 1
            self._last_entry = entry

            logger.debug(
                "journal append seq=%d type=%s", entry.sequence, entry.record_type
            )
            return entry

    @property
    def next_sequence(self) -> int:
        return self._sequence

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Restore sequence and last entry from an existing journal.
        A corrupted last line leaves genesis defaults and issues a RuntimeWarning.
        """
        if not self.journal_path.exists():
            return

        last_line = None
        with open(self.journal_path, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            entry = JournalEntry.from_dict(json.loads(last_line))
            if entry.record_type not in VALID_RECORD_TYPES:
                raise ValueError(f"unknown record_type '{entry.record_type}'")
            self._sequence   = entry.sequence + 1
            self._last_entry = entry
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("could not restore journal state from %s: %s", self.journal_path, exc)
            warnings.warn(
                f"Journal: could not restore state from {self.journal_path}: {exc}. "
                "Last line may be corrupted. Verify the journal before appending.",
                RuntimeWarning,
                stacklevel=3,
            )

    def _assert_chain_invariants(self, entry: JournalEntry) -> None:
        if entry.sequence != self._sequence:
            raise LedgerError(
                "Chain invariant violated - sequence mismatch",
                {"expected": self._sequence, "got": entry.sequence},
            )
        if not entry.verify_chain(self._last_entry):
            raise LedgerError("Chain invariant violated - prev_hash mismatch")

    def _write(self, entry: JournalEntry) -> None:
        try:
            with open(self.journal_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict()) + "\n")
        except OSError as exc:
            raise LedgerError(f"Journal write failed - {exc}") from exc
