"""
PolicyLedger Settlement

Claim filing with escrow, arbiter-only settlement with a processing fee,
and the treasury that funds payouts.

Critical Invariants:
- One claim record per policy, ever
- payout + fee == claim amount, exactly
- A claim is marked settled only after its transfer batch is accepted
"""

from policyledger.settlement.engine import ClaimSettlementEngine
from policyledger.settlement.treasury import FundTransferSink, Treasury

__all__ = ["ClaimSettlementEngine", "FundTransferSink", "Treasury"]
