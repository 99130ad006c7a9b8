"""
IBT bridge core.

Transfer orchestration between an account-based ledger (Ethereum) and an
object-based ledger (Sui): ledger adapter contract, coin selection,
pre-flight verification, receipt correlation and the transfer state machine.
"""

from .amounts import BASE_UNIT, TOKEN_DECIMALS, format_amount, parse_amount
from .bridge_types import (
    BridgeCapabilities,
    BridgeCapability,
    ChainSide,
    ChainVerification,
    PendingHandle,
    Receipt,
    SpendableUnit,
    TransferDirection,
    TransferOutcome,
    TransferState,
    TransferStatus,
    VerificationResult,
)
from .coin_selection import CoinSelector, select_unit
from .correlator import ReceiptCorrelator, correlate
from .ledger import LedgerAdapter
from .operations import BridgeMint, Burn, LockForBridge, Mint, OperationKind, TokenOperation
from .orchestrator import BridgeService, TransferOrchestrator
from .verification import VerificationStage

__all__ = [
    # Amounts
    "TOKEN_DECIMALS",
    "BASE_UNIT",
    "parse_amount",
    "format_amount",
    # Types
    "ChainSide",
    "TransferDirection",
    "TransferState",
    "TransferStatus",
    "SpendableUnit",
    "PendingHandle",
    "Receipt",
    "ChainVerification",
    "VerificationResult",
    "BridgeCapability",
    "BridgeCapabilities",
    "TransferOutcome",
    # Operations
    "OperationKind",
    "TokenOperation",
    "Mint",
    "Burn",
    "LockForBridge",
    "BridgeMint",
    # Components
    "LedgerAdapter",
    "CoinSelector",
    "select_unit",
    "VerificationStage",
    "ReceiptCorrelator",
    "correlate",
    "TransferOrchestrator",
    "BridgeService",
]
