"""
Ethereum ledger adapter.

Maps the IBT token contract onto the ledger adapter contract: balances come
from ``balanceOf``, Mint and Burn are owner-gated contract calls, and a
receipt is reported only once the transaction has succeeded and is buried
under the configured number of confirmations. web3 and transport failures
are re-classified into the bridge error taxonomy here.
"""

from typing import Any, Dict, Optional, Tuple

from web3.exceptions import TimeExhausted, Web3Exception

from ....errors import (
    BackoffStrategy,
    BridgeError,
    ChainUnavailableError,
    ConfigurationError,
    MalformedReceiptError,
    ReadError,
    RetryPolicy,
    SubmissionRejectedError,
    create_finality_timeout_error,
    poll_until,
    retry_async,
)
from ....logging import LogContext, get_logger
from ...bridge_types import ChainSide, ChainVerification, PendingHandle, Receipt
from ...encoding import normalize_eth_address
from ...ledger import LedgerAdapter
from ...operations import Burn, Mint, OperationKind, TokenOperation
from .client import EthereumClient, EthereumConfig
from .contracts import IBTTokenContract, burned_amount, minted_amount
from .session import EthereumSession

logger = get_logger(__name__)


class EthereumLedgerAdapter(LedgerAdapter):
    """Ledger adapter for the IBT token on Ethereum."""

    side = ChainSide.ACCOUNT

    def __init__(
        self,
        client: EthereumClient,
        contract_address: str,
        session: Optional[EthereumSession] = None,
        confirmations: int = 1,
        finality_timeout: float = 120.0,
        poll_interval: float = 1.0,
        token: Optional[IBTTokenContract] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client = client
        self.contract_address = normalize_eth_address(contract_address)
        self.session = session
        self.confirmations = confirmations
        self.finality_timeout = finality_timeout
        self.backoff = BackoffStrategy(strategy_type="fixed", base_delay=poll_interval)
        self.token = token or IBTTokenContract(client, self.contract_address)
        self.retry_policy = retry_policy or RetryPolicy()

    @classmethod
    def from_settings(cls, settings, session: Optional[EthereumSession] = None) -> "EthereumLedgerAdapter":
        client = EthereumClient(
            EthereumConfig(rpc_url=settings.ethereum_rpc_url, chain_id=settings.ethereum_chain_id)
        )
        return cls(
            client,
            settings.ethereum_contract,
            session=session,
            confirmations=settings.ethereum_confirmations,
            finality_timeout=settings.finality_timeout,
            poll_interval=settings.poll_interval,
        )

    def _context(self, operation: str) -> LogContext:
        return LogContext(component="ethereum_adapter", operation=operation, chain=self.chain)

    async def read_balance(self, owner: str) -> int:
        address = normalize_eth_address(owner)
        balance = await self._read(self.token.balance_of, address)
        logger.debug(
            "Balance Check",
            context=self._context("read_balance"),
            extra={"address": address, "balance": str(balance)},
        )
        return int(balance)

    async def submit(self, operation: TokenOperation) -> PendingHandle:
        self._check_operation_side(operation)
        if operation.capability_id.lower() != self.contract_address.lower():
            raise SubmissionRejectedError(
                f"Capability {operation.capability_id} is not the bridge token contract "
                f"{self.contract_address}",
                chain=self.chain,
            )
        if self.session is None:
            raise ConfigurationError(
                "No Ethereum signer session configured", config_key="ethereum_session"
            )

        sender = self.session.address
        if isinstance(operation, Mint):
            build, target = self.token.build_mint, operation.recipient
            label = "Token Mint"
        elif isinstance(operation, Burn):
            build, target = self.token.build_burn, operation.owner
            label = "Token Burn"
        else:
            raise SubmissionRejectedError(
                f"Ethereum does not support {operation.kind.value}", chain=self.chain
            )

        context = self._context("submit")
        logger.info(
            f"{label} - Initialize",
            context=context,
            extra={"signer": sender, "target": target, "amount_wei": str(operation.amount)},
        )
        try:
            transaction = await self._run_blocking(build, target, operation.amount, sender)
            tx_hash = await self._run_blocking(
                self.session.sign_and_submit, self.client, transaction
            )
        except BridgeError:
            raise
        except (Web3Exception, ValueError, OSError) as e:
            error = self._classify(e, f"{label} submission failed")
            logger.error(
                f"{label} - Failed",
                context=context,
                exception=e,
                extra={"error_kind": error.kind.value},
            )
            raise error from e

        logger.info(
            f"{label} - Transaction Submitted",
            context=context,
            extra={"tx_hash": tx_hash, "amount_wei": str(operation.amount)},
        )
        return PendingHandle(
            chain=self.side,
            transaction_id=tx_hash,
            operation_kind=operation.kind.value,
            amount=operation.amount,
        )

    async def await_finality(self, handle: PendingHandle) -> Receipt:
        done, receipt = await poll_until(
            lambda: self._query_receipt(handle), self.finality_timeout, self.backoff
        )
        if not done:
            logger.warning(
                "Transaction Confirmation - Timed Out",
                context=self._context("await_finality"),
                extra={"tx_hash": handle.transaction_id, "timeout": self.finality_timeout},
            )
            raise create_finality_timeout_error(self.chain, handle, self.finality_timeout)

        amount = self._finalized_amount(handle, receipt)
        result = Receipt(
            chain=self.side,
            transaction_id=handle.transaction_id,
            amount=amount,
            block_reference=str(receipt["blockNumber"]),
            operation_kind=handle.operation_kind,
        )
        logger.info(
            "Transaction Confirmed",
            context=self._context("await_finality"),
            extra={
                "tx_hash": handle.transaction_id,
                "block_number": receipt["blockNumber"],
                "gas_used": str(receipt.get("gasUsed", "")),
                "amount_wei": str(amount),
            },
        )
        return result

    async def _query_receipt(self, handle: PendingHandle) -> Tuple[bool, Optional[Dict[str, Any]]]:
        try:
            receipt = await self._run_blocking(self.client.get_receipt, handle.transaction_id)
            if receipt is None:
                return False, None
            if receipt["status"] != 1:
                raise SubmissionRejectedError(
                    f"Transaction {handle.transaction_id} reverted (execution reverted)",
                    chain=self.chain,
                    transaction_id=handle.transaction_id,
                )
            latest = await self._run_blocking(self.client.get_block_number)
        except BridgeError:
            raise
        except TimeExhausted:
            return False, None
        except (Web3Exception, ValueError, OSError) as e:
            # Keep polling: the outcome stays unknown until the deadline.
            logger.warning(
                "Transaction Confirmation - Query Failed",
                context=self._context("await_finality"),
                extra={"tx_hash": handle.transaction_id, "error": str(e)},
            )
            return False, None

        depth = latest - receipt["blockNumber"] + 1
        return depth >= max(self.confirmations, 1), receipt

    def _finalized_amount(self, handle: PendingHandle, receipt: Dict[str, Any]) -> int:
        events = self.token.transfer_events(receipt)
        if handle.operation_kind == OperationKind.MINT.value:
            amount = minted_amount(events)
        else:
            amount = burned_amount(events)
        if amount <= 0:
            raise MalformedReceiptError(
                f"Receipt for {handle.transaction_id} carries no {handle.operation_kind} "
                "Transfer event",
                field="logs",
                value=handle.transaction_id,
            )
        return amount

    async def verify(self) -> ChainVerification:
        checks: Dict[str, bool] = {}
        warnings = []
        problems = []

        try:
            chain_id = await self._read(self.client.get_chain_id)
        except BridgeError as e:
            return ChainVerification(
                side=self.side, ok=False, detail=e.message, checks={"reachable": False}
            )
        checks["reachable"] = True
        checks["chain_id"] = chain_id == self.client.config.chain_id
        if not checks["chain_id"]:
            problems.append(
                f"connected to chain {chain_id}, expected {self.client.config.chain_id}"
            )

        code = await self._safe_read(self.client.get_code, self.contract_address)
        checks["contract_code"] = bool(code)
        if not code:
            problems.append(f"no contract code at {self.contract_address}")

        owner = await self._safe_read(self.token.owner)
        checks["owner"] = owner is not None
        if owner is None:
            problems.append("contract owner() is not readable")

        if self.session is not None:
            signer = self.session.address
            balance = await self._safe_read(self.token.balance_of, signer)
            checks["signer_balance"] = balance is not None
            if balance is None:
                problems.append(f"balanceOf({signer}) is not readable")
            if owner is not None and owner.lower() != signer.lower():
                warnings.append(
                    f"signer {signer} is not the contract owner {owner}; mint and burn may revert"
                )

        ok = not problems
        detail = "token contract verified" if ok else "; ".join(problems)
        logger.info(
            "Contract Verification",
            context=self._context("verify"),
            extra={
                "contract_address": self.contract_address,
                "owner": owner,
                "checks": checks,
                "ok": ok,
            },
        )
        return ChainVerification(
            side=self.side, ok=ok, detail=detail, checks=checks, warnings=warnings
        )

    async def _read(self, func, *args) -> Any:
        """Read-only query, retried while the node is unreachable."""

        async def attempt():
            try:
                return await self._run_blocking(func, *args)
            except (Web3Exception, ValueError, OSError) as e:
                raise self._classify(e, "Ethereum query failed", read=True) from e

        return await retry_async(attempt, self.retry_policy)

    async def _safe_read(self, func, *args) -> Any:
        try:
            return await self._read(func, *args)
        except BridgeError as e:
            logger.debug(
                "Contract Verification - Query Failed",
                context=self._context("verify"),
                extra={"error": e.message},
            )
            return None

    def _classify(self, error: Exception, prefix: str, read: bool = False) -> BridgeError:
        """Re-classify a web3 or transport exception."""
        message = f"{prefix}: {error}"
        if isinstance(error, TimeExhausted):
            return create_finality_timeout_error(self.chain, None, self.finality_timeout)
        if isinstance(error, OSError):
            return ChainUnavailableError(
                message,
                endpoint=self.client.config.rpc_url,
                chain=self.chain,
                cause=error,
            )
        if read:
            return ReadError(message, chain=self.chain, cause=error)
        return SubmissionRejectedError(message, chain=self.chain, cause=error)
