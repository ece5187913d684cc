"""
Policy Registry.

Owns policy records and purchase bookkeeping. Validation order per
operation is fixed so callers always see the same rejection for the
same bad input:

    update    NotFound → Authorization → Validation
    delete    NotFound → Authorization
    purchase  NotFound → AlreadyPurchased → InsufficientFunds

Coverage and premium are scaled by the configured sub-unit factor on
both create and update.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from policyledger.core.exceptions import (
    AlreadyPurchasedError,
    AuthorizationError,
    InsufficientFundsError,
    NotFoundError,
)
from policyledger.core.models import (
    Policy,
    require_amount,
    require_principal,
    require_text,
)
from policyledger.core.state import LedgerState
from policyledger.core.time import MonotonicClock
from policyledger.ledger.journal import RecordType
from policyledger.settlement.treasury import FundTransferSink


logger = logging.getLogger(__name__)


class PolicyRegistry:
    """Create, update, soft-delete, purchase and enumerate policies."""

    def __init__(
        self,
        state:    LedgerState,
        treasury: FundTransferSink,
        clock:    Optional[Callable[[], int]] = None,
    ):
        self.state    = state
        self.treasury = treasury
        self.clock    = clock or MonotonicClock()
        self._appliers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            RecordType.POLICY_CREATED:   self._apply_created,
            RecordType.POLICY_UPDATED:   self._apply_updated,
            RecordType.POLICY_DELETED:   self._apply_deleted,
            RecordType.POLICY_PURCHASED: self._apply_purchased,
        }

    # ── Mutations ─────────────────────────────────────────────

    def create_policy(
        self,
        name:            str,
        description:     str,
        coverage_amount: int,
        premium:         int,
        *,
        caller:          str,
    ) -> Policy:
        """Create a live policy owned by caller. Returns the stored record."""
        require_principal(caller)
        terms = self._scaled_terms(name, description, coverage_amount, premium)

        with self.state.lock:
            policy = Policy(
                policy_id=     self.state.total_policies + 1,
                creator_owner= caller,
                policy_holder= caller,
                created_at=    self.clock(),
                **terms,
            )
            self.state.commit(
                RecordType.POLICY_CREATED,
                {"policy": policy.to_dict()},
                self._apply_created,
            )

        logger.info("policy %d created by %s", policy.policy_id, caller)
        return replace(policy)

    def update_policy(
        self,
        policy_id:       int,
        name:            str,
        description:     str,
        coverage_amount: int,
        premium:         int,
        *,
        caller:          str,
    ) -> Policy:
        """Replace the terms of a live policy. Only the policy holder may do this."""
        with self.state.lock:
            policy = self._require_live(policy_id)
            self._require_holder(policy, caller, "update")
            terms = self._scaled_terms(name, description, coverage_amount, premium)

            self.state.commit(
                RecordType.POLICY_UPDATED,
                {"policy_id": policy_id, **terms},
                self._apply_updated,
            )
            updated = replace(policy)

        logger.info("policy %d updated by %s", policy_id, caller)
        return updated

    def delete_policy(self, policy_id: int, *, caller: str) -> None:
        """
        Soft-delete a policy. Only the policy holder may do this.

        Deleting an already-deleted policy succeeds without a new record.
        """
        with self.state.lock:
            policy = self.state.policies.get(policy_id)
            if policy is None:
                raise NotFoundError(f"Policy {policy_id} not found", {"policy_id": policy_id})
            self._require_holder(policy, caller, "delete")

            if policy.deleted:
                logger.debug("policy %d already deleted", policy_id)
                return

            self.state.commit(
                RecordType.POLICY_DELETED,
                {"policy_id": policy_id, "deleted_by": caller},
                self._apply_deleted,
            )

        logger.info("policy %d deleted by %s", policy_id, caller)

    def purchase_policy(
        self,
        policy_id:      int,
        *,
        caller:         str,
        attached_funds: int,
    ) -> None:
        """
        Record caller as a buyer of a live policy.

        attached_funds must cover the premium. The whole amount, excess
        included, is accepted into the treasury; nothing is refunded.
        """
        require_principal(caller)
        require_amount(attached_funds, "attached_funds", allow_zero=True)

        with self.state.lock:
            policy = self._require_live(policy_id)
            if policy_id in self.state.purchases.get(caller, []):
                raise AlreadyPurchasedError(
                    f"{caller} already holds policy {policy_id}",
                    {"policy_id": policy_id},
                )
            if attached_funds < policy.premium:
                raise InsufficientFundsError(
                    f"Attached funds do not cover the premium of policy {policy_id}",
                    {"required": policy.premium, "attached": attached_funds},
                )

            self.treasury.deposit(caller, attached_funds)
            self.state.commit(
                RecordType.POLICY_PURCHASED,
                {"policy_id": policy_id, "buyer": caller, "funds": attached_funds},
                self._apply_purchased,
                undo=lambda: self.treasury.reverse_deposit(caller, attached_funds),
            )

        logger.info("policy %d purchased by %s for %d", policy_id, caller, attached_funds)

    # ── Reads ─────────────────────────────────────────────────

    def get_policy(self, policy_id: int) -> Policy:
        """
        Return a policy whether or not it is deleted.

        Raises NotFoundError for an id that was never assigned.
        """
        with self.state.lock:
            policy = self.state.policies.get(policy_id)
            if policy is None:
                raise NotFoundError(f"Policy {policy_id} not found", {"policy_id": policy_id})
            return replace(policy)

    def list_active_policies(self) -> List[Policy]:
        """All non-deleted policies in ascending id order, recomputed per call."""
        with self.state.lock:
            return [
                replace(self.state.policies[pid])
                for pid in sorted(self.state.live_ids)
            ]

    @property
    def total_policies(self) -> int:
        return self.state.total_policies

    def get_purchases(self, principal: str) -> List[int]:
        with self.state.lock:
            return list(self.state.purchases.get(principal, []))

    def has_purchased(self, principal: str, policy_id: int) -> bool:
        with self.state.lock:
            return policy_id in self.state.purchases.get(principal, [])

    # ── Replay ────────────────────────────────────────────────

    def handles(self, record_type: str) -> bool:
        return record_type in self._appliers

    def apply(self, record_type: str, payload: Dict[str, Any]) -> None:
        """Apply a journaled operation without re-validating or moving funds."""
        with self.state.lock:
            self._appliers[record_type](payload)

    def _apply_created(self, payload: Dict[str, Any]) -> None:
        policy = Policy.from_dict(payload["policy"])
        self.state.policies[policy.policy_id] = policy
        self.state.live_ids.add(policy.policy_id)
        self.state.total_policies = max(self.state.total_policies, policy.policy_id)

    def _apply_updated(self, payload: Dict[str, Any]) -> None:
        policy = self.state.policies[payload["policy_id"]]
        policy.name            = payload["name"]
        policy.description     = payload["description"]
        policy.coverage_amount = payload["coverage_amount"]
        policy.premium         = payload["premium"]

    def _apply_deleted(self, payload: Dict[str, Any]) -> None:
        self.state.policies[payload["policy_id"]].deleted = True
        self.state.live_ids.discard(payload["policy_id"])

    def _apply_purchased(self, payload: Dict[str, Any]) -> None:
        self.state.purchases.setdefault(payload["buyer"], []).append(payload["policy_id"])

    # ── Internal ──────────────────────────────────────────────

    def _scaled_terms(
        self,
        name:            str,
        description:     str,
        coverage_amount: int,
        premium:         int,
    ) -> Dict[str, Any]:
        factor = self.state.config.sub_unit_factor
        return {
            "name":            require_text(name, "name"),
            "description":     require_text(description, "description"),
            "coverage_amount": require_amount(coverage_amount, "coverage_amount") * factor,
            "premium":         require_amount(premium, "premium") * factor,
        }

    def _require_live(self, policy_id: int) -> Policy:
        policy = self.state.live_policy(policy_id)
        if policy is None:
            raise NotFoundError(f"Policy {policy_id} not found", {"policy_id": policy_id})
        return policy

    def _require_holder(self, policy: Policy, caller: str, action: str) -> None:
        if caller != policy.policy_holder:
            logger.warning(
                "rejected %s of policy %d by non-holder %s",
                action, policy.policy_id, caller,
            )
            raise AuthorizationError(
                f"Only the policy holder may {action} policy {policy.policy_id}",
                {"policy_id": policy.policy_id},
            )
