"""
Bridge types and data structures for the IBT bridge.

This module defines the core types shared by the ledger adapters, the
coin selector, the verification stage, the correlator and the transfer
orchestrator.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ErrorKind


class ChainSide(Enum):
    """The two ledgers the bridge connects."""

    ACCOUNT = "ethereum"  # account-based: direct balance mint/burn
    OBJECT = "sui"  # object-based: value lives in discrete coin objects

    @property
    def is_account_based(self) -> bool:
        return self is ChainSide.ACCOUNT


class TransferDirection(Enum):
    """Transfer directions."""

    SOURCE_TO_DESTINATION = "eth-to-sui"
    DESTINATION_TO_SOURCE = "sui-to-eth"

    @property
    def source_side(self) -> ChainSide:
        if self is TransferDirection.SOURCE_TO_DESTINATION:
            return ChainSide.ACCOUNT
        return ChainSide.OBJECT

    @property
    def destination_side(self) -> ChainSide:
        if self is TransferDirection.SOURCE_TO_DESTINATION:
            return ChainSide.OBJECT
        return ChainSide.ACCOUNT

    @classmethod
    def parse(cls, value: str) -> "TransferDirection":
        """Parse ``eth-to-sui`` / ``sui-to-eth`` or a member name."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() == member.value or text.upper() == member.name:
                return member
        raise ValueError(f"Unknown transfer direction: {value!r}")


class TransferState(Enum):
    """Transfer orchestrator states."""

    IDLE = "idle"
    VERIFYING = "verifying"
    SOURCE_OPERATION = "source_operation"
    SOURCE_REMEDIATION = "source_remediation"
    DESTINATION_OPERATION = "destination_operation"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferState.COMPLETED, TransferState.FAILED)


# Allowed transitions; FAILED is reachable from every non-terminal state.
TRANSITIONS: Dict[TransferState, Tuple[TransferState, ...]] = {
    TransferState.IDLE: (TransferState.VERIFYING,),
    TransferState.VERIFYING: (TransferState.SOURCE_OPERATION,),
    TransferState.SOURCE_OPERATION: (
        TransferState.SOURCE_REMEDIATION,
        TransferState.DESTINATION_OPERATION,
    ),
    TransferState.SOURCE_REMEDIATION: (TransferState.SOURCE_OPERATION,),
    TransferState.DESTINATION_OPERATION: (TransferState.COMPLETED,),
    TransferState.COMPLETED: (),
    TransferState.FAILED: (),
}


def can_transition(current: TransferState, target: TransferState) -> bool:
    """Check whether the state machine may move from ``current`` to ``target``."""
    if target is TransferState.FAILED:
        return not current.is_terminal
    return target in TRANSITIONS[current]


class TransferStatus(Enum):
    """Terminal outcome of a transfer request."""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SpendableUnit:
    """A coin object owned by one party on the object-based chain."""

    unit_id: str
    balance: int

    def __post_init__(self):
        if isinstance(self.balance, bool) or not isinstance(self.balance, int):
            raise TypeError("SpendableUnit.balance must be an int")
        if self.balance < 0:
            raise ValueError("SpendableUnit.balance cannot be negative")


@dataclass(frozen=True)
class PendingHandle:
    """A submitted operation whose finality has not been observed yet."""

    chain: ChainSide
    transaction_id: str
    operation_kind: str
    amount: int
    submitted_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "chain": self.chain.value,
            "transaction_id": self.transaction_id,
            "operation_kind": self.operation_kind,
            "amount": self.amount,
            "submitted_at": self.submitted_at,
        }


@dataclass(frozen=True)
class Receipt:
    """Proof that an operation reached finality. Immutable once produced."""

    chain: ChainSide
    transaction_id: str
    amount: int
    block_reference: Optional[str]
    operation_kind: str
    finalized_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "chain": self.chain.value,
            "transaction_id": self.transaction_id,
            "amount": self.amount,
            "block_reference": self.block_reference,
            "operation_kind": self.operation_kind,
            "finalized_at": self.finalized_at,
        }


@dataclass
class ChainVerification:
    """Verification of one chain's bridge resources."""

    side: ChainSide
    ok: bool
    detail: str = ""
    checks: Dict[str, bool] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "side": self.side.value,
            "ok": self.ok,
            "detail": self.detail,
            "checks": dict(self.checks),
            "warnings": list(self.warnings),
        }


@dataclass
class VerificationResult:
    """Result of the pre-flight check. Recomputed for every transfer attempt."""

    account: ChainVerification
    object: ChainVerification

    @property
    def ok(self) -> bool:
        return self.account.ok and self.object.ok

    def for_side(self, side: ChainSide) -> ChainVerification:
        return self.account if side is ChainSide.ACCOUNT else self.object

    def source_ok(self, direction: TransferDirection) -> bool:
        return self.for_side(direction.source_side).ok

    def destination_ok(self, direction: TransferDirection) -> bool:
        return self.for_side(direction.destination_side).ok

    @property
    def detail(self) -> str:
        failures = [
            f"{check.side.value}: {check.detail}"
            for check in (self.account, self.object)
            if not check.ok
        ]
        return "; ".join(failures) if failures else "all bridge resources verified"


@dataclass(frozen=True)
class BridgeCapability:
    """Privileged mint/burn authority, referenced by identifier only."""

    side: ChainSide
    capability_id: str
    kind: str = "admin"


@dataclass(frozen=True)
class BridgeCapabilities:
    """The capability pair handed to an orchestrator at construction."""

    account: Optional[BridgeCapability]
    object: Optional[BridgeCapability]

    def for_side(self, side: ChainSide) -> Optional[BridgeCapability]:
        return self.account if side is ChainSide.ACCOUNT else self.object

    def missing(self) -> List[str]:
        """Sides whose capability is absent or has an empty identifier."""
        return [
            side.value
            for side in ChainSide
            if self.for_side(side) is None or not self.for_side(side).capability_id
        ]


@dataclass
class TransferOutcome:
    """What ``request_transfer`` returns: Completed(receipts) or Failed(kind, detail).

    A failed outcome that carries a ``source_receipt`` is a partial completion:
    value left the source chain and the destination credit is still owed.
    """

    transfer_id: str
    status: TransferStatus
    direction: Optional[TransferDirection]
    amount: int
    source_party: str
    destination_party: str
    state: TransferState
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    cause_kind: Optional[ErrorKind] = None
    source_receipt: Optional[Receipt] = None
    destination_receipt: Optional[Receipt] = None
    source_handle: Optional[PendingHandle] = None
    destination_handle: Optional[PendingHandle] = None
    remediation_receipt: Optional[Receipt] = None
    verification: Optional[VerificationResult] = None
    history: List[TransferState] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.status is TransferStatus.COMPLETED

    @property
    def partially_completed(self) -> bool:
        """Source value is gone, destination credit is not confirmed."""
        return not self.completed and self.source_receipt is not None

    @property
    def requires_requery(self) -> bool:
        """An operation timed out; its outcome must be re-queried before acting."""
        return self.error_kind is ErrorKind.FINALITY_TIMEOUT or (
            self.cause_kind is ErrorKind.FINALITY_TIMEOUT
        )

    @property
    def receipt_pair(self) -> Optional[Tuple[Receipt, Receipt]]:
        if self.source_receipt and self.destination_receipt:
            return self.source_receipt, self.destination_receipt
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "transfer_id": self.transfer_id,
            "status": self.status.value,
            "direction": self.direction.value if self.direction else None,
            "amount": self.amount,
            "source_party": self.source_party,
            "destination_party": self.destination_party,
            "state": self.state.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "cause_kind": self.cause_kind.value if self.cause_kind else None,
            "detail": self.detail,
            "partially_completed": self.partially_completed,
            "source_receipt": self.source_receipt.to_dict() if self.source_receipt else None,
            "destination_receipt": (
                self.destination_receipt.to_dict() if self.destination_receipt else None
            ),
            "source_handle": self.source_handle.to_dict() if self.source_handle else None,
            "destination_handle": (
                self.destination_handle.to_dict() if self.destination_handle else None
            ),
            "history": [state.value for state in self.history],
        }
