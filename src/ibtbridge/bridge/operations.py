"""
Tagged token operations submitted to the ledger adapters.

Each operation validates itself at construction, so a malformed payload can
never reach a chain adapter. Operations are immutable and have a canonical
byte encoding used for logging and for comparing correlator output.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import InvalidTransferRequest
from .bridge_types import ChainSide, SpendableUnit
from .encoding import normalize_eth_address, normalize_sui_address

# Move `u64` upper bound for amounts on the object-based chain
SUI_U64_MAX = 2 ** 64 - 1
SOURCE_TRANSACTION_LENGTH = 32


class OperationKind(Enum):
    """Operation kinds."""

    MINT = "mint"
    BURN = "burn"
    LOCK_FOR_BRIDGE = "lock_for_bridge"
    BRIDGE_MINT = "bridge_mint"


def _check_amount(amount: Any, upper: Optional[int] = None) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidTransferRequest(
            f"Amount must be an integer number of base units, got {type(amount).__name__}",
            field="amount",
            value=amount,
        )
    if amount <= 0:
        raise InvalidTransferRequest(
            "Amount must be greater than zero", field="amount", value=amount
        )
    if upper is not None and amount > upper:
        raise InvalidTransferRequest(
            f"Amount {amount} exceeds the chain maximum {upper}",
            field="amount",
            value=amount,
        )


def _check_capability(capability_id: Any) -> None:
    if not isinstance(capability_id, str) or not capability_id.strip():
        raise InvalidTransferRequest(
            "Bridge capability identifier is required",
            field="capability_id",
            value=capability_id,
        )


def _eth_address(value: Any, field_name: str) -> str:
    try:
        return normalize_eth_address(value)
    except ValueError as e:
        raise InvalidTransferRequest(str(e), field=field_name, value=value, cause=e)


def _sui_address(value: Any, field_name: str) -> str:
    try:
        return normalize_sui_address(value)
    except ValueError as e:
        raise InvalidTransferRequest(str(e), field=field_name, value=value, cause=e)


class TokenOperation(ABC):
    """Behaviour shared by all operation payloads."""

    kind: OperationKind
    side: ChainSide

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        ...

    def canonical_bytes(self) -> bytes:
        """Deterministic encoding: sorted-key compact JSON."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode(
            "utf-8"
        )


@dataclass(frozen=True)
class Mint(TokenOperation):
    """Mint ``amount`` to ``recipient`` on the account-based chain."""

    recipient: str
    amount: int
    capability_id: str
    source_reference: Optional[str] = None

    kind = OperationKind.MINT
    side = ChainSide.ACCOUNT

    def __post_init__(self):
        _check_amount(self.amount)
        _check_capability(self.capability_id)
        object.__setattr__(self, "recipient", _eth_address(self.recipient, "recipient"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "recipient": self.recipient,
            "amount": str(self.amount),
            "capability_id": self.capability_id,
            "source_reference": self.source_reference,
        }


@dataclass(frozen=True)
class Burn(TokenOperation):
    """Burn ``amount`` from ``owner`` on the account-based chain."""

    owner: str
    amount: int
    capability_id: str

    kind = OperationKind.BURN
    side = ChainSide.ACCOUNT

    def __post_init__(self):
        _check_amount(self.amount)
        _check_capability(self.capability_id)
        object.__setattr__(self, "owner", _eth_address(self.owner, "owner"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "owner": self.owner,
            "amount": str(self.amount),
            "capability_id": self.capability_id,
        }


@dataclass(frozen=True)
class LockForBridge(TokenOperation):
    """Consume ``amount`` from one coin object, recording the foreign recipient."""

    unit: SpendableUnit
    amount: int
    foreign_address: str
    capability_id: str

    kind = OperationKind.LOCK_FOR_BRIDGE
    side = ChainSide.OBJECT

    def __post_init__(self):
        _check_amount(self.amount, SUI_U64_MAX)
        _check_capability(self.capability_id)
        if not isinstance(self.unit, SpendableUnit):
            raise InvalidTransferRequest(
                "LockForBridge requires a SpendableUnit", field="unit", value=self.unit
            )
        object.__setattr__(
            self,
            "unit",
            SpendableUnit(_sui_address(self.unit.unit_id, "unit"), self.unit.balance),
        )
        if self.unit.balance < self.amount:
            raise InvalidTransferRequest(
                f"Coin {self.unit.unit_id} holds {self.unit.balance}, "
                f"cannot lock {self.amount}",
                field="unit",
                value=self.unit.unit_id,
            )
        object.__setattr__(
            self, "foreign_address", _eth_address(self.foreign_address, "foreign_address")
        )

    @property
    def needs_split(self) -> bool:
        """The coin holds more than the amount, so an exact coin is split off first."""
        return self.unit.balance > self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "unit_id": self.unit.unit_id,
            "unit_balance": str(self.unit.balance),
            "amount": str(self.amount),
            "foreign_address": self.foreign_address,
            "capability_id": self.capability_id,
        }


@dataclass(frozen=True)
class BridgeMint(TokenOperation):
    """Mint bridged tokens on the object-based chain, citing the source transaction."""

    recipient: str
    amount: int
    source_transaction: bytes
    capability_id: str

    kind = OperationKind.BRIDGE_MINT
    side = ChainSide.OBJECT

    def __post_init__(self):
        _check_amount(self.amount, SUI_U64_MAX)
        _check_capability(self.capability_id)
        object.__setattr__(self, "recipient", _sui_address(self.recipient, "recipient"))
        source = self.source_transaction
        if not isinstance(source, (bytes, bytearray)) or len(source) != SOURCE_TRANSACTION_LENGTH:
            raise InvalidTransferRequest(
                f"Source transaction reference must be {SOURCE_TRANSACTION_LENGTH} bytes",
                field="source_transaction",
                value=source,
            )
        object.__setattr__(self, "source_transaction", bytes(source))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "recipient": self.recipient,
            "amount": str(self.amount),
            "source_transaction": "0x" + self.source_transaction.hex(),
            "capability_id": self.capability_id,
        }
