"""
Shared ledger state.

One LedgerState is shared by the Policy Registry and the Claim Settlement
Engine. Every public operation on either component runs inside
`state.lock`, so readers never observe a half-applied mutation and the
policy id counter stays unique across threads.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Set

from policyledger.core.config import LedgerConfig
from policyledger.core.exceptions import LedgerError
from policyledger.core.models import Claim, Policy


class LedgerState:
    """
    Authoritative in-memory state.

        policies        - policy_id → Policy (deleted policies stay here)
        live_ids        - ids of policies that exist and are not deleted
        purchases       - principal → policy ids bought, in purchase order
        claims          - policy_id → claim list (claim_id == list index)
        total_policies  - ids handed out so far; next id is total_policies + 1
    """

    def __init__(self, config: LedgerConfig, journal=None) -> None:
        self.config  = config
        self.journal = journal
        self.lock    = threading.RLock()

        self.policies:       Dict[int, Policy]      = {}
        self.live_ids:       Set[int]               = set()
        self.purchases:      Dict[str, List[int]]   = {}
        self.claims:         Dict[int, List[Claim]] = {}
        self.total_policies: int                    = 0

    def commit(
        self,
        record_type: str,
        payload:     Dict[str, Any],
        apply:       Callable[[Dict[str, Any]], None],
        undo:        Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Journal the operation, then apply it.

        Caller holds the lock, has finished validation and has already
        moved any funds. If the journal write raises, undo() reverses that
        fund movement, apply() never runs and the LedgerError propagates.
        """
        if self.journal is not None:
            try:
                self.journal.append(record_type, payload)
            except LedgerError:
                if undo is not None:
                    undo()
                raise
        apply(payload)

    def live_policy(self, policy_id: int) -> Optional[Policy]:
        if policy_id in self.live_ids:
            return self.policies[policy_id]
        return None
