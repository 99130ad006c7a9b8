"""
Sui (object-based) side of the IBT bridge.
"""

from .adapter import BURN_FUNCTION, MINT_FUNCTION, SuiLedgerAdapter
from .client import SuiClient, SuiConfig, SuiRPCError
from .session import Ed25519Session, SuiSession, sui_address_from_public_key

__all__ = [
    "SuiLedgerAdapter",
    "MINT_FUNCTION",
    "BURN_FUNCTION",
    "SuiClient",
    "SuiConfig",
    "SuiRPCError",
    "SuiSession",
    "Ed25519Session",
    "sui_address_from_public_key",
]
