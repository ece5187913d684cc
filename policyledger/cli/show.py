"""
policyledger show - replay a journal and print the ledger it describes.
"""

import json
import sys

import click

from policyledger.core.config import LedgerConfig
from policyledger.core.exceptions import PolicyLedgerError
from policyledger.runtime.context import LedgerRuntime


def _snapshot(runtime: LedgerRuntime) -> dict:
    registry = runtime.registry
    policies = registry.list_active_policies()
    return {
        "total_policies":  registry.total_policies,
        "active_policies": [p.to_dict() for p in policies],
        "claims": [
            c.to_dict()
            for pid in sorted(runtime.state.claims)
            for c in runtime.engine.get_claims(pid)
        ],
        "purchases": {
            principal: registry.get_purchases(principal)
            for principal in sorted(runtime.state.purchases)
        },
    }


@click.command(name="show")
@click.argument("journal", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="YAML ledger config (arbiter, tax_percent, processing_fee).",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option(
    "--no-verify",
    is_flag=True,
    default=False,
    help="Replay even if the journal fails verification.",
)
def show_command(journal: str, config_path: str, fmt: str, no_verify: bool) -> None:
    """Replay JOURNAL and print active policies, claims and purchases."""
    try:
        config  = LedgerConfig.from_yaml(config_path)
        runtime = LedgerRuntime.replay(config, journal, verify=not no_verify)
    except PolicyLedgerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    snapshot = _snapshot(runtime)

    if fmt == "json":
        click.echo(json.dumps(snapshot, indent=2))
        return

    click.echo(f"Total policies   {snapshot['total_policies']}")
    click.echo(f"Active policies  {len(snapshot['active_policies'])}")
    for p in snapshot["active_policies"]:
        click.echo(
            f"  #{p['policy_id']} {p['name']}  holder={p['policy_holder']}  "
            f"coverage={p['coverage_amount']}  premium={p['premium']}"
        )
    click.echo(f"Claims           {len(snapshot['claims'])}")
    for c in snapshot["claims"]:
        status = "settled" if c["settled"] else "filed"
        click.echo(
            f"  policy #{c['policy_id']} claim {c['claim_id']}  "
            f"claimant={c['claimant']}  amount={c['amount']}  {status}"
        )
    for principal, ids in snapshot["purchases"].items():
        click.echo(f"  {principal} holds {ids}")
