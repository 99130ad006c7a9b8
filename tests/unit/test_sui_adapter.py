"""
Unit tests for the Sui ledger adapter.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ibtbridge.bridge import BridgeMint, Burn, LockForBridge, PendingHandle, SpendableUnit
from ibtbridge.bridge.bridge_types import ChainSide
from ibtbridge.bridge.chains.sui import BURN_FUNCTION, MINT_FUNCTION, SuiLedgerAdapter, SuiRPCError
from ibtbridge.bridge.encoding import eth_address_bytes
from ibtbridge.errors import (
    ChainUnavailableError,
    ConfigurationError,
    ErrorKind,
    FinalityTimeoutError,
    ReadError,
    RetryPolicy,
    SubmissionRejectedError,
)

PACKAGE = "0x" + "9a" * 32
ADMIN_CAP = "0x" + "ad" * 32
TREASURY_CAP = "0x" + "7c" * 32
SUI_USER = "0x" + "5e" * 32
ETH_USER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TOKEN_CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
COIN_TYPE = f"{PACKAGE}::ibt_token::IBT_TOKEN"


def final_block(checkpoint="1200", events=None, object_changes=None, status="success"):
    return {
        "digest": "D",
        "effects": {"status": {"status": status, "error": "InsufficientCoinBalance"}},
        "checkpoint": checkpoint,
        "events": events or [],
        "objectChanges": object_changes or [],
    }


def handle(kind="bridge_mint", amount=10):
    return PendingHandle(ChainSide.OBJECT, "Digest1", kind, amount)


class TestSuiLedgerAdapter:
    """Test SuiLedgerAdapter."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = MagicMock()
        self.client.close = AsyncMock()
        self.session = MagicMock()
        self.session.address = SUI_USER
        self.session.sign_and_submit = AsyncMock(return_value="Digest1")
        self.adapter = SuiLedgerAdapter(
            self.client,
            PACKAGE,
            ADMIN_CAP,
            session=self.session,
            finality_timeout=0.05,
            poll_interval=0.001,
            retry_policy=RetryPolicy(max_retries=0),
        )

    def test_types(self):
        """Test derived Move types and limits."""
        assert self.adapter.coin_type == COIN_TYPE
        assert self.adapter.admin_cap_type == f"{PACKAGE}::ibt_token::AdminCap"
        assert self.adapter.max_amount == 2 ** 64 - 1
        assert self.adapter.chain == "sui"

    # Reads

    @pytest.mark.asyncio
    async def test_read_balance(self):
        """Test the total balance of the IBT coin type."""
        self.client.get_balance = AsyncMock(return_value={"totalBalance": "1500"})
        assert await self.adapter.read_balance("0x" + "5E" * 32) == 1500
        self.client.get_balance.assert_awaited_once_with(SUI_USER, COIN_TYPE)

    @pytest.mark.asyncio
    async def test_read_balance_unexpected_shape(self):
        """Test an unusable answer is a read error."""
        self.client.get_balance = AsyncMock(return_value={"coinType": COIN_TYPE})
        with pytest.raises(ReadError):
            await self.adapter.read_balance(SUI_USER)

    @pytest.mark.asyncio
    async def test_read_rpc_error(self):
        """Test RPC errors on reads are classified."""
        self.client.get_balance = AsyncMock(side_effect=SuiRPCError("suix_getBalance", -1, "bad"))
        with pytest.raises(ReadError) as exc_info:
            await self.adapter.read_balance(SUI_USER)
        assert exc_info.value.kind is ErrorKind.CHAIN_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_read_retries_unavailable_node(self):
        """Test reads are retried while the node is unreachable."""
        self.adapter.retry_policy = RetryPolicy(max_retries=1, base_delay=0.001)
        self.client.get_balance = AsyncMock(
            side_effect=[ChainUnavailableError("down"), {"totalBalance": "7"}]
        )
        assert await self.adapter.read_balance(SUI_USER) == 7

    @pytest.mark.asyncio
    async def test_list_spendable_units(self):
        """Test coins become spendable units."""
        self.client.get_all_coins = AsyncMock(
            return_value=[
                {"coinObjectId": "0x" + "01" * 32, "balance": "5"},
                {"coinObjectId": "0x" + "02" * 32, "balance": "3"},
            ]
        )
        units = await self.adapter.list_spendable_units(SUI_USER)
        assert units == [SpendableUnit("0x" + "01" * 32, 5), SpendableUnit("0x" + "02" * 32, 3)]
        self.client.get_all_coins.assert_awaited_once_with(SUI_USER, COIN_TYPE)

    # Submission

    @pytest.mark.asyncio
    async def test_submit_bridge_mint(self):
        """Test a bridge mint is a mint_bridged_tokens Move call."""
        self.client.move_call = AsyncMock(return_value={"txBytes": "AAAA"})
        source = bytes(range(32))
        pending = await self.adapter.submit(BridgeMint(SUI_USER, 10, source, ADMIN_CAP))

        assert pending.transaction_id == "Digest1"
        assert pending.operation_kind == "bridge_mint"
        assert pending.amount == 10
        self.client.move_call.assert_awaited_once_with(
            SUI_USER,
            PACKAGE,
            "ibt_token",
            MINT_FUNCTION,
            [],
            [ADMIN_CAP, "10", SUI_USER, list(source)],
            50_000_000,
        )
        self.session.sign_and_submit.assert_awaited_once_with(self.client, "AAAA")

    @pytest.mark.asyncio
    async def test_submit_exact_lock(self):
        """Test an exact coin is burned without a split."""
        coin = "0x" + "01" * 32
        self.client.move_call = AsyncMock(return_value={"txBytes": "BBBB"})
        self.client.split_coin = AsyncMock()
        await self.adapter.submit(LockForBridge(SpendableUnit(coin, 5), 5, ETH_USER, ADMIN_CAP))

        self.client.split_coin.assert_not_awaited()
        args = self.client.move_call.await_args.args
        assert args[3] == BURN_FUNCTION
        assert args[5] == [ADMIN_CAP, coin, list(eth_address_bytes(ETH_USER))]

    @pytest.mark.asyncio
    async def test_submit_lock_splits_larger_coin(self):
        """Test a larger coin is split and the exact new coin burned."""
        coin = "0x" + "01" * 32
        new_coin = "0x" + "77" * 32
        self.session.sign_and_submit = AsyncMock(side_effect=["SplitDigest", "BurnDigest"])
        self.client.split_coin = AsyncMock(return_value={"txBytes": "SPLIT"})
        self.client.move_call = AsyncMock(return_value={"txBytes": "BURN"})
        self.client.get_transaction_block = AsyncMock(
            return_value=final_block(
                object_changes=[
                    {"type": "mutated", "objectType": f"0x2::coin::Coin<{COIN_TYPE}>", "objectId": coin},
                    {"type": "created", "objectType": f"0x2::coin::Coin<{COIN_TYPE}>", "objectId": new_coin},
                ]
            )
        )
        pending = await self.adapter.submit(
            LockForBridge(SpendableUnit(coin, 9), 5, ETH_USER, ADMIN_CAP)
        )

        assert pending.transaction_id == "BurnDigest"
        self.client.split_coin.assert_awaited_once_with(SUI_USER, coin, [5], 50_000_000)
        self.client.get_transaction_block.assert_awaited_with("SplitDigest")
        assert self.client.move_call.await_args.args[5][1] == new_coin

    @pytest.mark.asyncio
    async def test_split_without_new_coin(self):
        """Test a split that created no IBT coin is rejected."""
        self.client.split_coin = AsyncMock(return_value={"txBytes": "SPLIT"})
        self.client.get_transaction_block = AsyncMock(return_value=final_block())
        with pytest.raises(SubmissionRejectedError, match="did not create"):
            await self.adapter.submit(
                LockForBridge(SpendableUnit("0x01", 9), 5, ETH_USER, ADMIN_CAP)
            )

    @pytest.mark.asyncio
    async def test_submit_rpc_error_is_rejection(self):
        """Test a Move call the node refuses to build is a rejection."""
        self.client.move_call = AsyncMock(
            side_effect=SuiRPCError("unsafe_moveCall", -32002, "InsufficientGas")
        )
        with pytest.raises(SubmissionRejectedError) as exc_info:
            await self.adapter.submit(BridgeMint(SUI_USER, 10, bytes(32), ADMIN_CAP))
        assert "InsufficientGas" in exc_info.value.message
        self.session.sign_and_submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_submit_wrong_capability(self):
        """Test another capability object is refused."""
        with pytest.raises(SubmissionRejectedError, match="AdminCap"):
            await self.adapter.submit(BridgeMint(SUI_USER, 10, bytes(32), TREASURY_CAP))

    @pytest.mark.asyncio
    async def test_submit_without_session(self):
        """Test submitting requires a signer."""
        self.adapter.session = None
        with pytest.raises(ConfigurationError):
            await self.adapter.submit(BridgeMint(SUI_USER, 10, bytes(32), ADMIN_CAP))

    @pytest.mark.asyncio
    async def test_submit_account_operation(self):
        """Test account-based operations are refused."""
        with pytest.raises(ValueError):
            await self.adapter.submit(Burn(ETH_USER, 1, TOKEN_CONTRACT))

    # Finality

    @pytest.mark.asyncio
    async def test_await_finality(self):
        """Test a checkpointed success yields a receipt with the event amount."""
        events = [
            {"type": "0x2::coin::CoinMetadata", "parsedJson": {"amount": "1"}},
            {"type": f"{PACKAGE}::ibt_token::BridgeMintEvent", "parsedJson": {"amount": "10"}},
        ]
        self.client.get_transaction_block = AsyncMock(return_value=final_block(events=events))
        receipt = await self.adapter.await_finality(handle(amount=10))
        assert receipt.transaction_id == "Digest1"
        assert receipt.amount == 10
        assert receipt.block_reference == "1200"
        assert receipt.chain is ChainSide.OBJECT

    @pytest.mark.asyncio
    async def test_amount_falls_back_to_submitted(self):
        """Test a block without a package event reports the submitted amount."""
        self.client.get_transaction_block = AsyncMock(return_value=final_block())
        assert (await self.adapter.await_finality(handle(amount=4))).amount == 4

    @pytest.mark.asyncio
    async def test_waits_for_checkpoint(self):
        """Test success without a checkpoint is not final yet."""
        self.client.get_transaction_block = AsyncMock(
            side_effect=[
                SuiRPCError("sui_getTransactionBlock", -32602, "Could not find the referenced transaction"),
                final_block(checkpoint=None),
                final_block(checkpoint="99"),
            ]
        )
        receipt = await self.adapter.await_finality(handle())
        assert receipt.block_reference == "99"

    @pytest.mark.asyncio
    async def test_failed_effects(self):
        """Test failed effects are a rejection, not a timeout."""
        self.client.get_transaction_block = AsyncMock(return_value=final_block(status="failure"))
        with pytest.raises(SubmissionRejectedError, match="InsufficientCoinBalance"):
            await self.adapter.await_finality(handle())

    @pytest.mark.asyncio
    async def test_finality_timeout(self):
        """Test an unknown outcome times out."""
        self.client.get_transaction_block = AsyncMock(return_value=final_block(checkpoint=None))
        with pytest.raises(FinalityTimeoutError) as exc_info:
            await self.adapter.await_finality(handle())
        assert exc_info.value.handle.transaction_id == "Digest1"

    # Verification

    def objects(self, **types):
        """get_object side effect answering by object id."""
        by_id = {PACKAGE: types.get("package", "package")}
        by_id[ADMIN_CAP] = types.get("admin_cap", f"{PACKAGE}::ibt_token::AdminCap")
        by_id[TREASURY_CAP] = types.get(
            "treasury_cap", f"0x2::coin::TreasuryCap<{COIN_TYPE}>"
        )

        def get_object(object_id, show_content=False):
            object_type = by_id.get(object_id)
            if object_type is None:
                return {"error": {"code": "notExists", "object_id": object_id}}
            return {"data": {"objectId": object_id, "type": object_type}}

        return AsyncMock(side_effect=get_object)

    @pytest.mark.asyncio
    async def test_verify(self):
        """Test a deployed package with its AdminCap."""
        self.client.get_object = self.objects()
        result = await self.adapter.verify()
        assert result.ok
        assert result.checks == {"reachable": True, "package": True, "admin_cap": True}

    @pytest.mark.asyncio
    async def test_verify_missing_package(self):
        """Test an absent package fails verification."""
        self.client.get_object = self.objects(package=None)
        result = await self.adapter.verify()
        assert not result.ok
        assert not result.checks["package"]
        assert "not found" in result.detail

    @pytest.mark.asyncio
    async def test_verify_wrong_admin_cap_type(self):
        """Test an object that is not the package's AdminCap."""
        self.client.get_object = self.objects(admin_cap="0x2::coin::Coin<0x2::sui::SUI>")
        result = await self.adapter.verify()
        assert not result.checks["admin_cap"]

    @pytest.mark.asyncio
    async def test_verify_treasury_cap(self):
        """Test the optional treasury capability check."""
        self.adapter.treasury_cap_id = TREASURY_CAP
        self.client.get_object = self.objects()
        assert (await self.adapter.verify()).checks["treasury_cap"]

    @pytest.mark.asyncio
    async def test_verify_unreachable(self):
        """Test an unreachable node."""
        self.client.get_object = AsyncMock(side_effect=ChainUnavailableError("down"))
        result = await self.adapter.verify()
        assert not result.ok
        assert result.checks == {"reachable": False}

    @pytest.mark.asyncio
    async def test_close(self):
        """Test closing releases the client."""
        await self.adapter.close()
        self.client.close.assert_awaited_once()
