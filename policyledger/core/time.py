"""
policyledger/core/time.py

Time sources for PolicyLedger.

    journal_timestamp()  → journal wire format YYYY-MM-DDTHH:MM:SS.mmmZ
    MonotonicClock       → integer seconds, never decreasing, used to stamp
                           Policy.created_at

Record stamping only. No ledger decision ever depends on time.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional


def journal_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


class MonotonicClock:
    """
    Integer timestamp source that never goes backwards.

    Wraps any callable returning seconds (defaults to time.time) and
    clamps its output to the last value handed out.
    """

    def __init__(self, source: Optional[Callable[[], float]] = None) -> None:
        self._source = source or time.time
        self._last   = 0
        self._lock   = threading.Lock()

    def now(self) -> int:
        with self._lock:
            current = int(self._source())
            if current < self._last:
                current = self._last
            self._last = current
            return current

    def __call__(self) -> int:
        return self.now()
