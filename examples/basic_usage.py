"""
PolicyLedger: Basic Usage Example

Demonstrates:
- Wiring a runtime from configuration
- Creating and buying a policy
- Filing and settling a claim
- Verifying and replaying the journal
"""

import tempfile
from pathlib import Path

from policyledger import JournalConfig, LedgerConfig, LedgerRuntime
from policyledger.ledger import JournalReplay


def main():
    """Basic PolicyLedger usage."""

    print("=" * 60)
    print("PolicyLedger: Basic Usage Example")
    print("=" * 60)
    print()

    workdir = Path(tempfile.mkdtemp(prefix="policyledger-"))
    journal_path = workdir / "journal.jsonl"

    # 1. Configure: arbiter, tax and fee percentages, journal location
    config = LedgerConfig(
        arbiter="owner",
        tax_percent=10,
        processing_fee=5,
        sub_unit_factor=1,
        journal=JournalConfig(path=journal_path),
    )
    runtime = LedgerRuntime.from_config(config)
    print(f"Runtime ready, journal at {journal_path}")

    # 2. A holder publishes a policy, a customer buys it
    policy = runtime.registry.create_policy(
        "Home", "Fire and flood cover", 1000, 50, caller="insurer",
    )
    runtime.registry.purchase_policy(policy.policy_id, caller="alice", attached_funds=50)
    print(f"Policy #{policy.policy_id} created and bought by alice")

    # 3. alice files a claim with escrow; the arbiter settles it
    escrow = runtime.engine.required_escrow(policy.policy_id)
    claim = runtime.engine.file_claim(
        policy.policy_id, 1000, caller="alice", attached_funds=escrow,
    )
    runtime.engine.settle_claim(policy.policy_id, claim.claim_id, caller="owner")
    print(
        f"Claim settled: alice received {runtime.treasury.credited['alice']}, "
        f"arbiter fee {runtime.treasury.credited['owner']}"
    )

    # 4. Verify the journal and rebuild state from it
    replay = JournalReplay()
    replay.load(journal_path)
    summary = replay.verify()
    print(f"Journal entries: {summary.total_entries}, valid: {summary.valid}")

    rebuilt = LedgerRuntime.replay(config, journal_path)
    print(f"Replayed active policies: {len(rebuilt.registry.list_active_policies())}")


if __name__ == "__main__":
    main()
