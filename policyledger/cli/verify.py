"""
policyledger verify - journal verification.

Exit codes:
    0  Journal fully valid (chain + signatures)
    1  Journal has violations
    2  Error (file missing, malformed JSON, unknown record type)
"""

import json
import sys

import click

from policyledger.core.exceptions import LedgerError
from policyledger.ledger.replay import JournalReplay, ReplaySummary


def _emit_error(message: str, fmt: str, quiet: bool) -> None:
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({"status": "ERROR", "error": message}))
    else:
        click.echo(f"Error: {message}", err=True)


def _output_human(summary: ReplaySummary, journal: str) -> None:
    click.echo(f"Journal        {journal}")
    click.echo(f"Entries        {summary.total_entries}")
    for record_type, count in sorted(summary.record_type_counts.items()):
        click.echo(f"  {record_type:<16} {count}")
    click.echo(
        f"Signatures     {summary.valid_signatures} valid, "
        f"{summary.invalid_signatures} invalid"
    )
    if summary.first_timestamp:
        click.echo(f"First entry    {summary.first_timestamp}")
        click.echo(f"Last entry     {summary.last_timestamp}")

    if summary.valid:
        click.echo("Result         VALID")
        return

    click.echo(f"Result         INVALID ({len(summary.violations)} violations)")
    for v in summary.violations:
        click.echo(f"  [{v.at_sequence}] {v.violation_type}: {v.detail}")


@click.command(name="verify")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
def verify_command(journal: str, fmt: str, quiet: bool) -> None:
    """
    Verify a journal - chain integrity and signatures.

    JOURNAL is the path to a .jsonl operation journal.
    """
    replay = JournalReplay()
    try:
        replay.load(journal)
    except LedgerError as e:
        _emit_error(str(e), fmt, quiet)
        sys.exit(2)

    summary = replay.verify()

    if not quiet:
        if fmt == "json":
            click.echo(json.dumps(
                {"status": "VALID" if summary.valid else "INVALID", **summary.to_dict()},
                indent=2,
            ))
        else:
            _output_human(summary, journal)

    sys.exit(0 if summary.valid else 1)
