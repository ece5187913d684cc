"""
policyledger/cli/__init__.py

PolicyLedger CLI - root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    policyledger = "policyledger.cli:cli"
"""

import logging

import click

from policyledger.cli.show import show_command
from policyledger.cli.verify import verify_command


@click.group()
@click.version_option(package_name="policyledger")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log to stderr.")
def cli(verbose: bool) -> None:
    """
    PolicyLedger - policy registry and claim settlement journal tools.

    \b
    Commands:
      verify    Verify a journal - chain and signatures.
      show      Replay a journal and print the resulting ledger.

    \b
    Quick start:
      policyledger verify .policyledger/journal.jsonl
      policyledger show .policyledger/journal.jsonl --config ledger.yaml
    """
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


cli.add_command(verify_command)
cli.add_command(show_command)
