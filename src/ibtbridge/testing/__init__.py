"""
Testing utilities for the IBT bridge.

In-memory ledger adapters for exercising transfers without live chains.
"""

from .ledgers import InMemoryAccountLedger, InMemoryObjectLedger

__all__ = ["InMemoryAccountLedger", "InMemoryObjectLedger"]
