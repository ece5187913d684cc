"""
policyledger/core/models.py

Ledger records and the shared input checks.

    Policy    - an insurable offering; soft-deleted, never purged
    Claim     - a payout request against a policy; Filed → Settled
    Transfer  - one (destination, amount) movement out of the treasury

Amounts are plain ints in sub-units. Records serialize to JSON-primitive
dicts so they can travel inside journal payloads unchanged.
"""

from dataclasses import dataclass
from typing import Any, Dict

from policyledger.core.exceptions import ValidationError


DEFAULT_SUB_UNIT_FACTOR = 10 ** 18


# ─────────────────────────────────────────────────────────────
# Input checks
# ─────────────────────────────────────────────────────────────

def require_text(value: Any, field: str) -> str:
    """Non-empty string or ValidationError."""
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{field} must be a non-empty string", {"field": field})
    return value


def require_amount(value: Any, field: str, allow_zero: bool = False) -> int:
    """
    Integer amount or ValidationError.

    bool is rejected even though it subclasses int.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{field} must be an integer, got {type(value).__name__}",
            {"field": field},
        )
    if value < 0 or (value == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise ValidationError(f"{field} must be {bound}", {"field": field, "value": value})
    return value


def require_principal(value: Any, field: str = "caller") -> str:
    return require_text(value, field)


# ─────────────────────────────────────────────────────────────
# Records
# ─────────────────────────────────────────────────────────────

@dataclass
class Policy:
    """A policy record. `deleted` only ever goes False → True."""
    policy_id:       int
    creator_owner:   str
    name:            str
    description:     str
    coverage_amount: int
    premium:         int
    policy_holder:   str
    created_at:      int
    deleted:         bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy_id":       self.policy_id,
            "creator_owner":   self.creator_owner,
            "name":            self.name,
            "description":     self.description,
            "coverage_amount": self.coverage_amount,
            "premium":         self.premium,
            "policy_holder":   self.policy_holder,
            "created_at":      self.created_at,
            "deleted":         self.deleted,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Policy":
        return Policy(
            policy_id=       data["policy_id"],
            creator_owner=   data["creator_owner"],
            name=            data["name"],
            description=     data["description"],
            coverage_amount= data["coverage_amount"],
            premium=         data["premium"],
            policy_holder=   data["policy_holder"],
            created_at=      data["created_at"],
            deleted=         data.get("deleted", False),
        )


@dataclass
class Claim:
    """A claim record. `claim_id` is its index in the policy's claim list."""
    claim_id:  int
    policy_id: int
    claimant:  str
    amount:    int
    settled:   bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claim_id":  self.claim_id,
            "policy_id": self.policy_id,
            "claimant":  self.claimant,
            "amount":    self.amount,
            "settled":   self.settled,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Claim":
        return Claim(
            claim_id=  data["claim_id"],
            policy_id= data["policy_id"],
            claimant=  data["claimant"],
            amount=    data["amount"],
            settled=   data.get("settled", False),
        )


@dataclass(frozen=True)
class Transfer:
    """One payout leg handed to the fund transfer sink."""
    destination: str
    amount:      int

    def to_dict(self) -> Dict[str, Any]:
        return {"destination": self.destination, "amount": self.amount}
