"""
Fund movement for PolicyLedger.

The ledger never holds balances itself. Attached funds are accepted into
an undifferentiated treasury, and settlements pay out of it through a
FundTransferSink. A transfer batch is all-or-nothing.

Every movement has a reversal. The ledger calls it when the operation
that moved the funds fails to reach the journal, so a failed operation
leaves the sink as it found it.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Protocol, Sequence

from policyledger.core.exceptions import TransferError, ValidationError
from policyledger.core.models import Transfer


logger = logging.getLogger(__name__)


class FundTransferSink(Protocol):
    """What the registry and settlement engine need from a wallet."""

    def deposit(self, source: str, amount: int) -> None:
        ...

    def transfer(self, transfers: Sequence[Transfer]) -> None:
        ...

    def reverse_deposit(self, source: str, amount: int) -> None:
        ...

    def reverse_transfer(self, transfers: Sequence[Transfer]) -> None:
        ...


class Treasury:
    """
    In-memory FundTransferSink.

        balance   - funds available for payouts
        credited  - destination → total paid out to it
        history   - every accepted movement, oldest first
    """

    def __init__(self, opening_balance: int = 0) -> None:
        if opening_balance < 0:
            raise ValidationError("opening_balance must be non-negative")
        self._lock    = threading.Lock()
        self.balance  = opening_balance
        self.credited: Dict[str, int]       = defaultdict(int)
        self.history:  List[Dict[str, Any]] = []

    def deposit(self, source: str, amount: int) -> None:
        if amount < 0:
            raise ValidationError("deposit amount must be non-negative", {"amount": amount})
        with self._lock:
            self.balance += amount
            self.history.append({"kind": "deposit", "source": source, "amount": amount})

    def transfer(self, transfers: Sequence[Transfer]) -> None:
        """Pay every leg or none. Raises TransferError if the batch exceeds the balance."""
        total = sum(t.amount for t in transfers)
        if any(t.amount < 0 for t in transfers):
            raise TransferError("transfer amounts must be non-negative")
        with self._lock:
            if total > self.balance:
                raise TransferError(
                    "Treasury cannot cover transfer batch",
                    {"requested": total, "balance": self.balance},
                )
            self.balance -= total
            for t in transfers:
                self.credited[t.destination] += t.amount
                self.history.append({"kind": "transfer", **t.to_dict()})
        logger.debug("treasury paid %d across %d legs", total, len(transfers))

    def reverse_deposit(self, source: str, amount: int) -> None:
        """Hand back a deposit accepted by deposit()."""
        with self._lock:
            self.balance -= amount
            self.history.append({"kind": "reverse_deposit", "source": source, "amount": amount})
        logger.warning("treasury reversed deposit of %d from %s", amount, source)

    def reverse_transfer(self, transfers: Sequence[Transfer]) -> None:
        """Claw back a batch paid by transfer()."""
        total = sum(t.amount for t in transfers)
        with self._lock:
            self.balance += total
            for t in transfers:
                self.credited[t.destination] -= t.amount
                self.history.append({"kind": "reverse_transfer", **t.to_dict()})
        logger.warning("treasury reversed %d across %d legs", total, len(transfers))
