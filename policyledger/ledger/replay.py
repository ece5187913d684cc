"""
policyledger/ledger/replay.py

Journal Replay - load, verify, and iterate a journal file.

    1. Load    → JournalEntry.from_dict(line)  - fail fast on malformed lines
    2. Chain   → entry.verify_chain(prev)      - sequential
    3. Sig     → entry.verify_signature()

State rebuild lives in LedgerRuntime.replay(); this module never
touches ledger state.
"""

import json
from collections import defaultdict
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from policyledger.core.exceptions import LedgerError
from policyledger.ledger.journal import JournalEntry, VALID_RECORD_TYPES


@dataclass
class ChainViolation:
    """A single detected violation in the journal."""
    at_sequence:    int
    record_id:      str
    violation_type: str   # "sequence_gap" | "chain_break" | "invalid_signature"
    detail:         str


@dataclass
class ReplaySummary:
    """Aggregate result of a full journal verification pass."""
    total_entries:      int
    valid:              bool
    violations:         List[ChainViolation]
    valid_signatures:   int
    invalid_signatures: int
    record_type_counts: Dict[str, int]
    writers_seen:       List[str]
    first_timestamp:    Optional[str]
    last_timestamp:     Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class JournalReplay:
    """
    Usage:
        replay = JournalReplay()
        replay.load(Path(".policyledger/journal.jsonl"))
        summary = replay.verify()
    """

    def __init__(self) -> None:
        self.entries:      List[JournalEntry]   = []
        self.violations:   List[ChainViolation] = []
        self.journal_path: Optional[Path]       = None

    def load(self, journal_path: Path) -> None:
        """
        Load a journal JSONL file.

        Raises:
            LedgerError - missing file, malformed JSON, missing field,
                          or unknown record_type
        """
        journal_path      = Path(journal_path)
        self.journal_path = journal_path
        self.entries      = []
        self.violations   = []

        if not journal_path.exists():
            raise LedgerError(f"Journal not found: {journal_path}")

        with open(journal_path, "r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                raw = raw.strip()
                if not raw:
                    continue

                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise LedgerError(
                        f"Malformed JSON at journal line {line_num}: {e}"
                    ) from e

                try:
                    entry = JournalEntry.from_dict(data)
                except (KeyError, TypeError) as e:
                    raise LedgerError(
                        f"Missing required field at journal line {line_num}: {e}"
                    ) from e

                if entry.record_type not in VALID_RECORD_TYPES:
                    raise LedgerError(
                        f"Unknown record_type '{entry.record_type}' "
                        f"at journal line {line_num}"
                    )

                self.entries.append(entry)

    def verify(self) -> ReplaySummary:
        """Full verification pass over all loaded entries."""
        self.violations = []
        valid_sigs   = 0
        invalid_sigs = 0

        for i, entry in enumerate(self.entries):
            prev = self.entries[i - 1] if i > 0 else None

            if entry.sequence != i:
                self.violations.append(ChainViolation(
                    at_sequence=    i,
                    record_id=      entry.record_id,
                    violation_type= "sequence_gap",
                    detail=         f"Expected sequence {i}, got {entry.sequence}",
                ))

            if not entry.verify_chain(prev):
                expected = JournalEntry.chain_hash(prev)
                self.violations.append(ChainViolation(
                    at_sequence=    entry.sequence,
                    record_id=      entry.record_id,
                    violation_type= "chain_break",
                    detail=(
                        f"prev_hash mismatch: expected ...{expected[-12:]}, "
                        f"got ...{str(entry.prev_hash)[-12:]}"
                    ),
                ))

            if entry.verify_signature():
                valid_sigs += 1
            else:
                invalid_sigs += 1
                self.violations.append(ChainViolation(
                    at_sequence=    entry.sequence,
                    record_id=      entry.record_id,
                    violation_type= "invalid_signature",
                    detail=(
                        f"Signature invalid "
                        f"(signer: {str(entry.signer_public_key)[:16]}...)"
                    ),
                ))

        counts: Dict[str, int] = defaultdict(int)
        for entry in self.entries:
            counts[entry.record_type] += 1

        return ReplaySummary(
            total_entries=      len(self.entries),
            valid=              not self.violations,
            violations=         list(self.violations),
            valid_signatures=   valid_sigs,
            invalid_signatures= invalid_sigs,
            record_type_counts= dict(counts),
            writers_seen=       sorted({e.writer_id for e in self.entries}),
            first_timestamp=    self.entries[0].timestamp if self.entries else None,
            last_timestamp=     self.entries[-1].timestamp if self.entries else None,
        )
