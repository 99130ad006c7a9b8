"""
Property-based tests for the IBT bridge

Tests amount conversion, coin selection, receipt correlation and transfer
conservation using hypothesis. These properties must hold for any amount,
any coin set and any starting balance.
"""

import asyncio
from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from ibtbridge.bridge import (
    BridgeCapabilities,
    BridgeCapability,
    ChainSide,
    Receipt,
    SpendableUnit,
    TransferDirection,
    TransferOrchestrator,
    format_amount,
    parse_amount,
)
from ibtbridge.bridge.coin_selection import select_unit
from ibtbridge.bridge.correlator import correlate
from ibtbridge.errors import NoCoinSufficientError
from ibtbridge.testing import InMemoryAccountLedger, InMemoryObjectLedger

TOKEN_CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
SUI_ADMIN_CAP = "0x" + "ad" * 32
ETH_USER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
SUI_USER = "0x" + "5e" * 32

base_units = st.integers(min_value=1, max_value=10 ** 30)
coin_ids = st.integers(min_value=1, max_value=2 ** 64).map(hex)
coin_sets = st.dictionaries(coin_ids, st.integers(min_value=0, max_value=10 ** 20), max_size=8)


def units(coins):
    return [SpendableUnit("0x" + coin_id[2:].rjust(64, "0"), balance) for coin_id, balance in coins.items()]


class TestAmountProperties:
    """Property-based tests for amount conversion."""

    @given(amount=base_units)
    def test_format_then_parse_is_exact(self, amount):
        """Test formatting base units never loses precision."""
        assert parse_amount(format_amount(amount)) == amount

    @given(amount=base_units)
    def test_decimal_matches_string(self, amount):
        """Test Decimal and string inputs agree."""
        text = format_amount(amount)
        assert parse_amount(Decimal(text)) == parse_amount(text)


class TestCoinSelectionProperties:
    """Property-based tests for coin selection."""

    @given(coins=coin_sets, required=st.integers(min_value=1, max_value=10 ** 20), data=st.data())
    def test_selection_ignores_input_order(self, coins, required, data):
        """Test the same coin is chosen for any ordering of the coin list."""
        original = units(coins)
        shuffled = data.draw(st.permutations(original))
        try:
            chosen = select_unit(original, required)
        except NoCoinSufficientError:
            with pytest.raises(NoCoinSufficientError):
                select_unit(shuffled, required)
            assert all(unit.balance < required for unit in original)
            return
        assert select_unit(shuffled, required) == chosen
        assert chosen.balance >= required

    @given(coins=coin_sets, required=st.integers(min_value=1, max_value=10 ** 20))
    def test_first_covering_coin(self, coins, required):
        """Test no coin with a smaller id could have covered the amount."""
        candidates = units(coins)
        try:
            chosen = select_unit(candidates, required)
        except NoCoinSufficientError:
            return
        assert all(
            unit.balance < required for unit in candidates if unit.unit_id < chosen.unit_id
        )


class TestCorrelationProperties:
    """Property-based tests for receipt correlation."""

    @given(digest=st.binary(min_size=32, max_size=32), amount=st.integers(min_value=1, max_value=2 ** 64 - 1))
    def test_ethereum_receipt_is_cited(self, digest, amount):
        """Test the bridge mint cites exactly the burn transaction."""
        receipt = Receipt(ChainSide.ACCOUNT, "0x" + digest.hex(), amount, "1", "burn")
        first = correlate(receipt, amount, SUI_USER, SUI_ADMIN_CAP)
        second = correlate(receipt, amount, SUI_USER, SUI_ADMIN_CAP)
        assert first.source_transaction == digest
        assert first.canonical_bytes() == second.canonical_bytes()


class TestConservationProperties:
    """Property-based tests for transfer conservation."""

    @settings(max_examples=30, deadline=None)
    @given(
        starting=st.integers(min_value=0, max_value=10 ** 21),
        amount=st.integers(min_value=1, max_value=10 ** 19),
    )
    def test_completed_transfer_moves_exact_amount(self, starting, amount):
        """Test the destination gains exactly what the source sent."""
        ethereum = InMemoryAccountLedger(TOKEN_CONTRACT, {ETH_USER: starting})
        sui = InMemoryObjectLedger(SUI_ADMIN_CAP)
        orchestrator = TransferOrchestrator(
            ethereum,
            sui,
            BridgeCapabilities(
                BridgeCapability(ChainSide.ACCOUNT, ethereum.capability_id),
                BridgeCapability(ChainSide.OBJECT, sui.capability_id),
            ),
        )

        outcome = asyncio.run(
            orchestrator.request_transfer(
                TransferDirection.SOURCE_TO_DESTINATION, amount, ETH_USER, SUI_USER
            )
        )

        assert outcome.completed
        source, destination = outcome.receipt_pair
        assert source.amount == destination.amount == amount
        assert ethereum.balances[ETH_USER] == max(starting, amount) - amount
        assert asyncio.run(sui.read_balance(SUI_USER)) == amount
