"""
Ethereum (account-based) side of the IBT bridge.
"""

from .adapter import EthereumLedgerAdapter
from .client import EthereumClient, EthereumConfig
from .contracts import IBT_TOKEN_ABI, ZERO_ADDRESS, IBTTokenContract
from .session import EthereumSession, LocalAccountSession

__all__ = [
    "EthereumLedgerAdapter",
    "EthereumClient",
    "EthereumConfig",
    "IBTTokenContract",
    "IBT_TOKEN_ABI",
    "ZERO_ADDRESS",
    "EthereumSession",
    "LocalAccountSession",
]
