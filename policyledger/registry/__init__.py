"""
PolicyLedger Policy Registry

Owns Policy records and purchase bookkeeping.
"""

from policyledger.registry.registry import PolicyRegistry

__all__ = ["PolicyRegistry"]
