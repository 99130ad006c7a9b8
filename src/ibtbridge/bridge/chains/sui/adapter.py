"""
Sui ledger adapter.

IBT on Sui lives in ``Coin<IBT_TOKEN>`` objects. Bridge mints call
``<module>::mint_bridged_tokens`` and bridge burns call
``<module>::burn_for_bridge``, both authorized by the ``AdminCap`` object.
A transaction is final once it is included in a checkpoint with successful
effects.
"""

from typing import Any, Dict, List, Optional, Tuple

from ....errors import (
    BackoffStrategy,
    BridgeError,
    ConfigurationError,
    ReadError,
    RetryPolicy,
    SubmissionRejectedError,
    create_finality_timeout_error,
    poll_until,
    retry_async,
)
from ....logging import LogContext, get_logger
from ...bridge_types import ChainSide, ChainVerification, PendingHandle, Receipt, SpendableUnit
from ...encoding import eth_address_bytes, normalize_sui_address
from ...ledger import LedgerAdapter
from ...operations import SUI_U64_MAX, BridgeMint, LockForBridge, TokenOperation
from .client import SuiClient, SuiConfig, SuiRPCError
from .session import SuiSession

logger = get_logger(__name__)

MINT_FUNCTION = "mint_bridged_tokens"
BURN_FUNCTION = "burn_for_bridge"


def normalize_type(type_tag: str) -> str:
    """Normalize the address part of a Move type tag (``0x2::coin::Coin<...>`` etc.)."""
    address, sep, rest = type_tag.partition("::")
    if not sep:
        return type_tag
    try:
        return normalize_sui_address(address) + sep + rest
    except ValueError:
        return type_tag


class SuiLedgerAdapter(LedgerAdapter):
    """Ledger adapter for the IBT token on Sui."""

    side = ChainSide.OBJECT

    def __init__(
        self,
        client: SuiClient,
        package_id: str,
        admin_cap_id: str,
        session: Optional[SuiSession] = None,
        module: str = "ibt_token",
        treasury_cap_id: Optional[str] = None,
        gas_budget: int = 50_000_000,
        finality_timeout: float = 120.0,
        poll_interval: float = 1.0,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client = client
        self.package_id = normalize_sui_address(package_id)
        self.admin_cap_id = normalize_sui_address(admin_cap_id)
        self.treasury_cap_id = normalize_sui_address(treasury_cap_id) if treasury_cap_id else None
        self.session = session
        self.module = module
        self.gas_budget = gas_budget
        self.finality_timeout = finality_timeout
        self.backoff = BackoffStrategy(strategy_type="fixed", base_delay=poll_interval)
        self.retry_policy = retry_policy or RetryPolicy()

    @classmethod
    def from_settings(cls, settings, session: Optional[SuiSession] = None) -> "SuiLedgerAdapter":
        client = SuiClient(
            SuiConfig(rpc_url=settings.resolved_sui_rpc_url, network=settings.sui_network)
        )
        return cls(
            client,
            settings.sui_package_id,
            settings.sui_admin_cap_id,
            session=session,
            module=settings.sui_module,
            treasury_cap_id=settings.sui_treasury_cap_id or None,
            gas_budget=settings.sui_gas_budget,
            finality_timeout=settings.finality_timeout,
            poll_interval=settings.poll_interval,
        )

    @property
    def max_amount(self) -> int:
        return SUI_U64_MAX

    async def close(self) -> None:
        await self.client.close()

    @property
    def coin_type(self) -> str:
        return f"{self.package_id}::{self.module}::IBT_TOKEN"

    @property
    def admin_cap_type(self) -> str:
        return f"{self.package_id}::{self.module}::AdminCap"

    def _context(self, operation: str) -> LogContext:
        return LogContext(component="sui_adapter", operation=operation, chain=self.chain)

    async def read_balance(self, owner: str) -> int:
        address = normalize_sui_address(owner)
        result = await self._read(self.client.get_balance, address, self.coin_type)
        try:
            balance = int(result["totalBalance"])
        except (KeyError, TypeError, ValueError) as e:
            raise ReadError(
                f"Unexpected suix_getBalance result for {address}: {result!r}",
                chain=self.chain,
                cause=e,
            )
        logger.debug(
            "Balance Check",
            context=self._context("read_balance"),
            extra={"address": address, "balance": str(balance)},
        )
        return balance

    async def list_spendable_units(self, owner: str) -> List[SpendableUnit]:
        address = normalize_sui_address(owner)
        coins = await self._read(self.client.get_all_coins, address, self.coin_type)
        units = [SpendableUnit(coin["coinObjectId"], int(coin["balance"])) for coin in coins]
        logger.info(
            "Coin Selection - Available Coins",
            context=self._context("list_spendable_units"),
            extra={
                "owner": address,
                "coins": [{"id": unit.unit_id, "balance": str(unit.balance)} for unit in units],
            },
        )
        return units

    async def submit(self, operation: TokenOperation) -> PendingHandle:
        self._check_operation_side(operation)
        if normalize_sui_address(operation.capability_id) != self.admin_cap_id:
            raise SubmissionRejectedError(
                f"Capability {operation.capability_id} is not the bridge AdminCap "
                f"{self.admin_cap_id}",
                chain=self.chain,
            )
        if self.session is None:
            raise ConfigurationError("No Sui signer session configured", config_key="sui_session")

        if isinstance(operation, BridgeMint):
            label = "ETH->SUI Bridge"
            function = MINT_FUNCTION
            arguments = [
                self.admin_cap_id,
                str(operation.amount),
                operation.recipient,
                list(operation.source_transaction),
            ]
        elif isinstance(operation, LockForBridge):
            label = "SUI->ETH Bridge"
            function = BURN_FUNCTION
            coin_id = operation.unit.unit_id
            if operation.needs_split:
                coin_id = await self._split_exact(operation)
            arguments = [self.admin_cap_id, coin_id, list(eth_address_bytes(operation.foreign_address))]
        else:
            raise SubmissionRejectedError(
                f"Sui does not support {operation.kind.value}", chain=self.chain
            )

        context = self._context("submit")
        logger.info(
            f"{label} - Transaction Creation",
            context=context,
            extra={
                "target": f"{self.package_id}::{self.module}::{function}",
                "admin_cap_id": self.admin_cap_id,
                "amount": str(operation.amount),
            },
        )
        digest = await self._sign_and_submit(
            label,
            self.client.move_call,
            self.session.address,
            self.package_id,
            self.module,
            function,
            [],
            arguments,
            self.gas_budget,
        )
        logger.info(
            f"{label} - Transaction Submitted",
            context=context,
            extra={"digest": digest, "status": "pending"},
        )
        return PendingHandle(
            chain=self.side,
            transaction_id=digest,
            operation_kind=operation.kind.value,
            amount=operation.amount,
        )

    async def _split_exact(self, operation: LockForBridge) -> str:
        """Split an exact-amount coin off ``operation.unit`` and return its object id."""
        context = self._context("split_coin")
        logger.info(
            "SUI->ETH Bridge - Splitting Coin",
            context=context,
            extra={
                "coin_object_id": operation.unit.unit_id,
                "coin_balance": str(operation.unit.balance),
                "amount": str(operation.amount),
            },
        )
        digest = await self._sign_and_submit(
            "Coin Split",
            self.client.split_coin,
            self.session.address,
            operation.unit.unit_id,
            [operation.amount],
            self.gas_budget,
        )
        handle = PendingHandle(
            chain=self.side,
            transaction_id=digest,
            operation_kind="split_coin",
            amount=operation.amount,
        )
        done, block = await poll_until(
            lambda: self._query_transaction(handle), self.finality_timeout, self.backoff
        )
        if not done:
            raise create_finality_timeout_error(self.chain, handle, self.finality_timeout)

        for change in block.get("objectChanges") or []:
            if (
                change.get("type") == "created"
                and self.coin_type in normalize_type(change.get("objectType", ""))
            ):
                logger.info(
                    "SUI->ETH Bridge - Coin Split",
                    context=context,
                    extra={"digest": digest, "coin_object_id": change["objectId"]},
                )
                return normalize_sui_address(change["objectId"])

        raise SubmissionRejectedError(
            f"Coin split {digest} did not create a {self.coin_type} coin",
            chain=self.chain,
            transaction_id=digest,
        )

    async def _sign_and_submit(self, label: str, build, *args) -> str:
        try:
            built = await build(*args)
            return await self.session.sign_and_submit(self.client, built["txBytes"])
        except SuiRPCError as e:
            logger.error(
                f"{label} - Failed",
                context=self._context("submit"),
                exception=e,
                extra={"error": e.message, "status": "failed"},
            )
            raise SubmissionRejectedError(
                f"{label} rejected: {e.message}", chain=self.chain, cause=e
            ) from e

    async def await_finality(self, handle: PendingHandle) -> Receipt:
        done, block = await poll_until(
            lambda: self._query_transaction(handle), self.finality_timeout, self.backoff
        )
        if not done:
            logger.warning(
                "Transaction Confirmation - Timed Out",
                context=self._context("await_finality"),
                extra={"digest": handle.transaction_id, "timeout": self.finality_timeout},
            )
            raise create_finality_timeout_error(self.chain, handle, self.finality_timeout)

        amount = self._finalized_amount(handle, block)
        receipt = Receipt(
            chain=self.side,
            transaction_id=handle.transaction_id,
            amount=amount,
            block_reference=str(block["checkpoint"]),
            operation_kind=handle.operation_kind,
        )
        logger.info(
            "Transaction Confirmed",
            context=self._context("await_finality"),
            extra={
                "digest": handle.transaction_id,
                "checkpoint": receipt.block_reference,
                "amount": str(amount),
            },
        )
        return receipt

    async def _query_transaction(self, handle: PendingHandle) -> Tuple[bool, Optional[Dict[str, Any]]]:
        try:
            block = await self.client.get_transaction_block(handle.transaction_id)
        except (SuiRPCError, BridgeError) as e:
            # Unknown digest or unreachable node: keep polling until the deadline.
            logger.debug(
                "Transaction Confirmation - Pending",
                context=self._context("await_finality"),
                extra={"digest": handle.transaction_id, "error": str(e)},
            )
            return False, None

        status = ((block or {}).get("effects") or {}).get("status") or {}
        if status.get("status") == "failure":
            raise SubmissionRejectedError(
                f"Transaction {handle.transaction_id} failed: {status.get('error', 'unknown error')}",
                chain=self.chain,
                transaction_id=handle.transaction_id,
            )
        if status.get("status") != "success" or block.get("checkpoint") is None:
            return False, block
        return True, block

    def _finalized_amount(self, handle: PendingHandle, block: Dict[str, Any]) -> int:
        """Amount reported by the package's bridge event, else the submitted amount."""
        for event in block.get("events") or []:
            if not normalize_type(event.get("type", "")).startswith(self.package_id + "::"):
                continue
            parsed = event.get("parsedJson") or {}
            if "amount" in parsed:
                return int(parsed["amount"])
        return handle.amount

    async def verify(self) -> ChainVerification:
        checks: Dict[str, bool] = {}
        problems = []

        try:
            package = await self._read(self.client.get_object, self.package_id)
        except BridgeError as e:
            return ChainVerification(
                side=self.side, ok=False, detail=e.message, checks={"reachable": False}
            )
        checks["reachable"] = True
        checks["package"] = self._object_type(package) == "package"
        if not checks["package"]:
            problems.append(f"package {self.package_id} not found")

        admin_cap = await self._safe_object(self.admin_cap_id)
        checks["admin_cap"] = normalize_type(self._object_type(admin_cap) or "") == self.admin_cap_type
        if not checks["admin_cap"]:
            problems.append(
                f"admin capability {self.admin_cap_id} not found or not a {self.admin_cap_type}"
            )

        if self.treasury_cap_id:
            treasury = await self._safe_object(self.treasury_cap_id)
            checks["treasury_cap"] = "TreasuryCap" in (self._object_type(treasury) or "")
            if not checks["treasury_cap"]:
                problems.append(f"treasury capability {self.treasury_cap_id} not found")

        ok = not problems
        detail = "bridge package verified" if ok else "; ".join(problems)
        logger.info(
            "Package Verification",
            context=self._context("verify"),
            extra={
                "package_id": self.package_id,
                "admin_cap_id": self.admin_cap_id,
                "checks": checks,
                "ok": ok,
            },
        )
        return ChainVerification(side=self.side, ok=ok, detail=detail, checks=checks)

    @staticmethod
    def _object_type(result: Optional[Dict[str, Any]]) -> Optional[str]:
        data = (result or {}).get("data") or {}
        return data.get("type")

    async def _safe_object(self, object_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._read(self.client.get_object, object_id)
        except BridgeError as e:
            logger.debug(
                "Package Verification - Query Failed",
                context=self._context("verify"),
                extra={"object_id": object_id, "error": e.message},
            )
            return None

    async def _read(self, func, *args) -> Any:
        """Read-only query, retried while the node is unreachable."""

        async def attempt():
            try:
                return await func(*args)
            except SuiRPCError as e:
                raise ReadError(f"Sui query failed: {e}", chain=self.chain, cause=e) from e

        return await retry_async(attempt, self.retry_policy)
