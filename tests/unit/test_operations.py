"""
Unit tests for token operation payloads.
"""

import dataclasses

import pytest

from ibtbridge.bridge import (
    BridgeMint,
    Burn,
    ChainSide,
    LockForBridge,
    Mint,
    OperationKind,
    SpendableUnit,
)
from ibtbridge.bridge.operations import SUI_U64_MAX, TokenOperation
from ibtbridge.errors import InvalidTransferRequest

TOKEN_CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
ETH_USER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
SUI_ADMIN_CAP = "0x" + "ad" * 32
SUI_USER = "0x" + "5e" * 32


class TestAccountOperations:
    """Test Mint and Burn."""

    def test_mint(self):
        """Test a mint payload."""
        mint = Mint(ETH_USER.lower(), 10, TOKEN_CONTRACT)
        assert mint.kind is OperationKind.MINT
        assert mint.side is ChainSide.ACCOUNT
        assert mint.recipient == ETH_USER
        assert mint.source_reference is None

    def test_burn(self):
        """Test a burn payload."""
        burn = Burn(ETH_USER, 3, TOKEN_CONTRACT)
        assert burn.kind is OperationKind.BURN
        assert burn.to_dict()["amount"] == "3"

    @pytest.mark.parametrize("amount", [0, -1, 1.5, "10", True])
    def test_rejects_bad_amount(self, amount):
        """Test amounts must be positive integers."""
        with pytest.raises(InvalidTransferRequest) as exc_info:
            Mint(ETH_USER, amount, TOKEN_CONTRACT)
        assert exc_info.value.field == "amount"

    def test_rejects_bad_recipient(self):
        """Test the recipient must be an Ethereum address."""
        with pytest.raises(InvalidTransferRequest) as exc_info:
            Mint(SUI_USER, 1, TOKEN_CONTRACT)
        assert exc_info.value.field == "recipient"

    def test_requires_capability(self):
        """Test the capability identifier is required."""
        with pytest.raises(InvalidTransferRequest):
            Burn(ETH_USER, 1, "")

    def test_immutable(self):
        """Test payloads are frozen."""
        burn = Burn(ETH_USER, 1, TOKEN_CONTRACT)
        with pytest.raises(dataclasses.FrozenInstanceError):
            burn.amount = 2


class TestLockForBridge:
    """Test LockForBridge."""

    def test_exact_coin(self):
        """Test a coin holding exactly the amount needs no split."""
        lock = LockForBridge(SpendableUnit("0xc1", 5), 5, ETH_USER.lower(), SUI_ADMIN_CAP)
        assert lock.side is ChainSide.OBJECT
        assert lock.unit.unit_id == "0x" + "0" * 62 + "c1"
        assert lock.foreign_address == ETH_USER
        assert not lock.needs_split

    def test_larger_coin_needs_split(self):
        """Test a larger coin is split before the burn."""
        lock = LockForBridge(SpendableUnit("0xc1", 9), 5, ETH_USER, SUI_ADMIN_CAP)
        assert lock.needs_split

    def test_rejects_small_coin(self):
        """Test the coin must cover the amount."""
        with pytest.raises(InvalidTransferRequest) as exc_info:
            LockForBridge(SpendableUnit("0xc1", 4), 5, ETH_USER, SUI_ADMIN_CAP)
        assert exc_info.value.field == "unit"

    def test_rejects_non_unit(self):
        """Test the unit must be a SpendableUnit."""
        with pytest.raises(InvalidTransferRequest):
            LockForBridge(("0xc1", 5), 5, ETH_USER, SUI_ADMIN_CAP)

    def test_rejects_foreign_sui_address(self):
        """Test the foreign address must be an Ethereum address."""
        with pytest.raises(InvalidTransferRequest) as exc_info:
            LockForBridge(SpendableUnit("0xc1", 5), 5, SUI_USER, SUI_ADMIN_CAP)
        assert exc_info.value.field == "foreign_address"

    def test_rejects_amount_above_u64(self):
        """Test Sui amounts are bounded by u64."""
        with pytest.raises(InvalidTransferRequest):
            LockForBridge(
                SpendableUnit("0xc1", SUI_U64_MAX + 1), SUI_U64_MAX + 1, ETH_USER, SUI_ADMIN_CAP
            )


class TestBridgeMint:
    """Test BridgeMint."""

    def test_bridge_mint(self):
        """Test a bridge mint payload."""
        source = bytes(range(32))
        mint = BridgeMint("0x5e", 10, bytearray(source), SUI_ADMIN_CAP)
        assert mint.kind is OperationKind.BRIDGE_MINT
        assert mint.recipient == "0x" + "0" * 62 + "5e"
        assert mint.source_transaction == source
        assert mint.to_dict()["source_transaction"] == "0x" + source.hex()

    def test_rejects_short_source_transaction(self):
        """Test the source reference must be 32 bytes."""
        with pytest.raises(InvalidTransferRequest) as exc_info:
            BridgeMint(SUI_USER, 10, bytes(31), SUI_ADMIN_CAP)
        assert exc_info.value.field == "source_transaction"

    def test_amount_bounds(self):
        """Test u64 boundary."""
        assert BridgeMint(SUI_USER, SUI_U64_MAX, bytes(32), SUI_ADMIN_CAP).amount == SUI_U64_MAX
        with pytest.raises(InvalidTransferRequest):
            BridgeMint(SUI_USER, SUI_U64_MAX + 1, bytes(32), SUI_ADMIN_CAP)

    def test_rejects_ethereum_recipient(self):
        """Test the recipient must be a Sui address."""
        with pytest.raises(InvalidTransferRequest):
            BridgeMint(ETH_USER + "zz", 10, bytes(32), SUI_ADMIN_CAP)


class TestCanonicalBytes:
    """Test the canonical payload encoding."""

    def test_deterministic(self):
        """Test equal payloads encode identically."""
        first = BridgeMint(SUI_USER, 10, bytes(32), SUI_ADMIN_CAP)
        second = BridgeMint(SUI_USER.upper().replace("0X", "0x"), 10, bytes(32), SUI_ADMIN_CAP)
        assert first == second
        assert first.canonical_bytes() == second.canonical_bytes()

    def test_distinguishes_payloads(self):
        """Test different payloads encode differently."""
        first = Mint(ETH_USER, 10, TOKEN_CONTRACT)
        second = Mint(ETH_USER, 11, TOKEN_CONTRACT)
        assert first.canonical_bytes() != second.canonical_bytes()
        assert b'"kind":"mint"' in first.canonical_bytes()

    def test_base_operation_is_abstract(self):
        """Test every payload type must say how it encodes itself."""
        with pytest.raises(TypeError):
            TokenOperation()
