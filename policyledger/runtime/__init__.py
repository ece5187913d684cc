"""
PolicyLedger Runtime - wires configuration, state, components and journal.
"""

from policyledger.runtime.context import LedgerRuntime

__all__ = ["LedgerRuntime"]
