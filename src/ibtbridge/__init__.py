"""
IBT Bridge - moves the IBT token between Ethereum and Sui.

The core is the transfer orchestrator in ``ibtbridge.bridge``; concrete chain
adapters live in ``ibtbridge.bridge.chains``.
"""

__version__ = "0.1.0"

from .bridge import (
    BridgeService,
    TransferDirection,
    TransferOrchestrator,
    TransferOutcome,
    format_amount,
    parse_amount,
)
from .config import BridgeSettings
from .errors import BridgeError, ErrorKind

__all__ = [
    "__version__",
    "BridgeSettings",
    "BridgeService",
    "TransferOrchestrator",
    "TransferDirection",
    "TransferOutcome",
    "BridgeError",
    "ErrorKind",
    "parse_amount",
    "format_amount",
]
