"""
Claim Settlement Engine.

Owns claim records, scoped per policy. A claim references its policy by
id only: deleting a policy does not touch its claims, and a claim on a
deleted policy can still be settled.

Claim lifecycle: Filed → Settled (terminal).
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Tuple

from policyledger.core.exceptions import (
    AlreadySettledError,
    AuthorizationError,
    ClaimIndexError,
    DuplicateClaimError,
    InsufficientFundsError,
    NotFoundError,
)
from policyledger.core.models import (
    Claim,
    Policy,
    Transfer,
    require_amount,
    require_principal,
)
from policyledger.core.state import LedgerState
from policyledger.ledger.journal import RecordType
from policyledger.settlement.treasury import FundTransferSink


logger = logging.getLogger(__name__)


class ClaimSettlementEngine:
    """
    Files claims against live policies and lets the arbiter settle them.

    A policy carries at most one claim record, ever: a settled claim
    still blocks a new filing.
    """

    def __init__(self, state: LedgerState, treasury: FundTransferSink):
        self.state    = state
        self.treasury = treasury
        self._appliers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            RecordType.CLAIM_FILED:   self._apply_filed,
            RecordType.CLAIM_SETTLED: self._apply_settled,
        }

    @property
    def arbiter(self) -> str:
        return self.state.config.arbiter

    # ── Arithmetic ────────────────────────────────────────────

    def required_escrow(self, policy_id: int) -> int:
        """coverage + coverage * tax_percent // 100 for a live policy."""
        with self.state.lock:
            return self._escrow_for(self._require_live(policy_id))

    def settlement_split(self, amount: int) -> Tuple[int, int]:
        """
        (payout, fee) for a claim amount.

        The fee truncates; the claimant's side absorbs the remainder so
        payout + fee == amount.
        """
        fee = amount * self.state.config.processing_fee // 100
        return amount - fee, fee

    # ── Mutations ─────────────────────────────────────────────

    def file_claim(
        self,
        policy_id:      int,
        amount:         int,
        *,
        caller:         str,
        attached_funds: int,
    ) -> Claim:
        """
        File a claim. attached_funds is the escrow and must reach
        required_escrow(policy_id); it is accepted into the treasury.
        """
        require_principal(caller)
        require_amount(amount, "amount", allow_zero=True)
        require_amount(attached_funds, "attached_funds", allow_zero=True)

        with self.state.lock:
            policy   = self._require_live(policy_id)
            required = self._escrow_for(policy)
            if attached_funds < required:
                raise InsufficientFundsError(
                    f"Escrow for policy {policy_id} is underfunded",
                    {"required": required, "attached": attached_funds},
                )
            if self.state.claims.get(policy_id):
                raise DuplicateClaimError(
                    f"Policy {policy_id} already has a claim",
                    {"policy_id": policy_id},
                )

            claim = Claim(
                claim_id=  len(self.state.claims.get(policy_id, [])),
                policy_id= policy_id,
                claimant=  caller,
                amount=    amount,
            )
            self.treasury.deposit(caller, attached_funds)
            self.state.commit(
                RecordType.CLAIM_FILED,
                {"claim": claim.to_dict(), "escrow": attached_funds},
                self._apply_filed,
                undo=lambda: self.treasury.reverse_deposit(caller, attached_funds),
            )

        logger.info(
            "claim %d filed on policy %d by %s for %d",
            claim.claim_id, policy_id, caller, amount,
        )
        return replace(claim)

    def settle_claim(self, policy_id: int, claim_id: int, *, caller: str) -> Claim:
        """
        Pay a claim out: amount - fee to the claimant, fee to the arbiter.

        Both legs go to the treasury as one batch before the claim is
        marked settled; a rejected batch leaves the claim unsettled, and a
        failed journal write claws the batch back.
        """
        if caller != self.arbiter:
            logger.warning(
                "rejected settlement of claim %s/%s by non-arbiter %s",
                policy_id, claim_id, caller,
            )
            raise AuthorizationError(
                "Only the arbiter may settle claims",
                {"policy_id": policy_id, "claim_id": claim_id},
            )

        with self.state.lock:
            claim = self._require_claim(policy_id, claim_id)
            if claim.settled:
                raise AlreadySettledError(
                    f"Claim {claim_id} on policy {policy_id} is already settled",
                    {"policy_id": policy_id, "claim_id": claim_id},
                )

            payout, fee = self.settlement_split(claim.amount)
            batch = [
                Transfer(destination=claim.claimant, amount=payout),
                Transfer(destination=self.arbiter, amount=fee),
            ]
            self.treasury.transfer(batch)
            self.state.commit(
                RecordType.CLAIM_SETTLED,
                {
                    "policy_id": policy_id,
                    "claim_id":  claim_id,
                    "claimant":  claim.claimant,
                    "arbiter":   self.arbiter,
                    "payout":    payout,
                    "fee":       fee,
                },
                self._apply_settled,
                undo=lambda: self.treasury.reverse_transfer(batch),
            )
            settled = replace(claim)

        logger.info(
            "claim %d on policy %d settled: payout=%d fee=%d",
            claim_id, policy_id, payout, fee,
        )
        return settled

    # ── Reads ─────────────────────────────────────────────────

    def get_claims(self, policy_id: int) -> List[Claim]:
        """Claims filed on policy_id; empty when there are none."""
        with self.state.lock:
            return [replace(c) for c in self.state.claims.get(policy_id, [])]

    def get_claim(self, policy_id: int, claim_id: int) -> Claim:
        with self.state.lock:
            return replace(self._require_claim(policy_id, claim_id))

    # ── Replay ────────────────────────────────────────────────

    def handles(self, record_type: str) -> bool:
        return record_type in self._appliers

    def apply(self, record_type: str, payload: Dict[str, Any]) -> None:
        """Apply a journaled operation without re-validating or moving funds."""
        with self.state.lock:
            self._appliers[record_type](payload)

    def _apply_filed(self, payload: Dict[str, Any]) -> None:
        claim = Claim.from_dict(payload["claim"])
        self.state.claims.setdefault(claim.policy_id, []).append(claim)

    def _apply_settled(self, payload: Dict[str, Any]) -> None:
        self.state.claims[payload["policy_id"]][payload["claim_id"]].settled = True

    # ── Internal ──────────────────────────────────────────────

    def _escrow_for(self, policy: Policy) -> int:
        coverage = policy.coverage_amount
        return coverage + coverage * self.state.config.tax_percent // 100

    def _require_live(self, policy_id: int) -> Policy:
        policy = self.state.live_policy(policy_id)
        if policy is None:
            raise NotFoundError(f"Policy {policy_id} not found", {"policy_id": policy_id})
        return policy

    def _require_claim(self, policy_id: int, claim_id: int) -> Claim:
        claims = self.state.claims.get(policy_id, [])
        valid_id = isinstance(claim_id, int) and not isinstance(claim_id, bool)
        if not valid_id or not 0 <= claim_id < len(claims):
            raise ClaimIndexError(
                f"Claim {claim_id} out of range for policy {policy_id}",
                {"policy_id": policy_id, "claims": len(claims)},
            )
        return claims[claim_id]
