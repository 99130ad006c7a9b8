"""
Bridge transfer orchestrator.

The orchestrator sequences one user transfer across the two ledgers:

    Idle -> Verifying -> SourceOperation -> (SourceRemediation)? ->
    DestinationOperation -> Completed

with Failed reachable from every non-terminal state. Value leaves the source
chain before it is credited on the destination chain and there is no
rollback: a destination failure after the source receipt exists is reported
as a partial completion and left for ``resume`` or manual intervention.

Every chain failure arrives here already classified by the ledger adapters;
the orchestrator only reads ``BridgeError.kind``.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from ..errors import (
    BridgeError,
    ConfigurationError,
    ErrorKind,
    InsufficientAfterRemediationError,
    InvalidTransferRequest,
    SubmissionRejectedError,
    describe_error,
)
from ..logging import LogContext, get_logger
from .amounts import TOKEN_DECIMALS, parse_amount
from .bridge_types import (
    BridgeCapabilities,
    ChainSide,
    PendingHandle,
    Receipt,
    TransferDirection,
    TransferOutcome,
    TransferState,
    TransferStatus,
    VerificationResult,
    can_transition,
)
from .coin_selection import CoinSelector
from .correlator import ReceiptCorrelator
from .encoding import normalize_eth_address, normalize_sui_address
from .ledger import LedgerAdapter
from .operations import SOURCE_TRANSACTION_LENGTH, BridgeMint, Burn, LockForBridge, Mint
from .verification import VerificationStage

if TYPE_CHECKING:
    from ..config import BridgeSettings

logger = get_logger(__name__)

AmountInput = Union[str, Decimal, int]

# Liquidity minted by ``mint_test_tokens`` when no amount is given. Sui coin
# values are u64, so its default stays below 2**64 base units.
TEST_MINT_AMOUNTS = {ChainSide.ACCOUNT: "1000", ChainSide.OBJECT: "10"}


@dataclass
class _TransferRun:
    """Mutable bookkeeping for one orchestration call."""

    transfer_id: str
    direction: Optional[TransferDirection] = None
    amount: int = 0
    source_party: str = ""
    destination_party: str = ""
    state: TransferState = TransferState.IDLE
    history: List[TransferState] = field(default_factory=lambda: [TransferState.IDLE])
    verification: Optional[VerificationResult] = None
    source_handle: Optional[PendingHandle] = None
    source_receipt: Optional[Receipt] = None
    remediation_receipt: Optional[Receipt] = None
    destination_handle: Optional[PendingHandle] = None
    destination_receipt: Optional[Receipt] = None

    @classmethod
    def from_outcome(cls, outcome: TransferOutcome) -> "_TransferRun":
        history = [state for state in outcome.history if not state.is_terminal]
        return cls(
            transfer_id=outcome.transfer_id,
            direction=outcome.direction,
            amount=outcome.amount,
            source_party=outcome.source_party,
            destination_party=outcome.destination_party,
            state=history[-1] if history else TransferState.IDLE,
            history=history or [TransferState.IDLE],
            verification=outcome.verification,
            source_handle=outcome.source_handle,
            source_receipt=outcome.source_receipt,
            remediation_receipt=outcome.remediation_receipt,
            destination_handle=outcome.destination_handle,
        )

    def context(self, operation: str) -> LogContext:
        return LogContext(
            component="orchestrator", operation=operation, correlation_id=self.transfer_id
        )


class TransferOrchestrator:
    """Runs single transfers between the account-based and object-based ledgers.

    The bridge capabilities are handed in at construction and used by
    identifier only. One orchestrator instance is assumed to be the sole user
    of each capability.
    """

    def __init__(
        self,
        account_ledger: LedgerAdapter,
        object_ledger: LedgerAdapter,
        capabilities: BridgeCapabilities,
        selector: Optional[CoinSelector] = None,
        correlator: Optional[ReceiptCorrelator] = None,
        verification: Optional[VerificationStage] = None,
        decimals: int = TOKEN_DECIMALS,
    ):
        self.account_ledger = account_ledger
        self.object_ledger = object_ledger
        self.capabilities = capabilities
        self.selector = selector or CoinSelector()
        self.correlator = correlator or ReceiptCorrelator()
        self.verification = verification or VerificationStage(account_ledger, object_ledger)
        self.decimals = decimals

    def ledger(self, side: ChainSide) -> LedgerAdapter:
        return self.account_ledger if side is ChainSide.ACCOUNT else self.object_ledger

    async def request_transfer(
        self,
        direction: Union[TransferDirection, str],
        amount: AmountInput,
        source_party: str,
        destination_party: str,
    ) -> TransferOutcome:
        """Move ``amount`` from ``source_party`` to ``destination_party``.

        ``amount`` is a decimal token string (``"10"``, ``"0.5"``) or a
        ``Decimal``; an ``int`` is taken as base units. Never raises for
        chain or request failures: the result is always a TransferOutcome.
        """
        run = _TransferRun(transfer_id=uuid.uuid4().hex)
        try:
            self._accept(run, direction, amount, source_party, destination_party)
        except BridgeError as e:
            logger.warning(
                "Transfer Request - Rejected",
                context=run.context("request_transfer"),
                extra={"error_kind": e.kind.value, "detail": e.message},
            )
            return self._outcome(run, TransferStatus.FAILED, e.kind, describe_error(e))

        logger.info(
            "Transfer Request - Accepted",
            context=run.context("request_transfer"),
            extra={
                "direction": run.direction.value,
                "amount": str(run.amount),
                "source_party": run.source_party,
                "destination_party": run.destination_party,
            },
        )

        self._transition(run, TransferState.VERIFYING)
        run.verification = await self.verification.verify(run.transfer_id)
        if not run.verification.ok:
            return self._fail(run, ErrorKind.VERIFICATION_FAILED, run.verification.detail)

        self._transition(run, TransferState.SOURCE_OPERATION)
        try:
            if run.direction.source_side is ChainSide.ACCOUNT:
                receipt = await self._burn_on_account_chain(run)
            else:
                receipt = await self._lock_on_object_chain(run)
        except BridgeError as e:
            return self._fail(run, e.kind, describe_error(e))

        return await self._continue_with_receipt(run, receipt)

    async def resume(self, outcome: TransferOutcome) -> TransferOutcome:
        """Finish whatever a failed transfer still owes, without re-running its source step.

        A timed-out source operation is re-queried by its handle. For a
        partial completion any recorded destination handle is re-queried
        first, whatever failed; the destination operation is re-submitted
        from the recorded source receipt only when there is no handle or the
        chain rejected it. A finalized but unusable destination receipt is
        reported again as a partial completion, never minted a second time.
        """
        if outcome.completed:
            return outcome

        run = _TransferRun.from_outcome(outcome)
        context = run.context("resume")

        if run.source_receipt is None:
            if outcome.error_kind is not ErrorKind.FINALITY_TIMEOUT or run.source_handle is None:
                logger.info(
                    "Transfer Resume - Nothing To Resume",
                    context=context,
                    extra={"error_kind": outcome.error_kind.value if outcome.error_kind else None},
                )
                return outcome

            logger.info(
                "Transfer Resume - Re-querying Source",
                context=context,
                extra={"transaction_id": run.source_handle.transaction_id},
            )
            source_ledger = self.ledger(run.direction.source_side)
            try:
                receipt = await source_ledger.await_finality(run.source_handle)
            except BridgeError as e:
                return self._fail(run, e.kind, describe_error(e))
            return await self._continue_with_receipt(run, receipt)

        if run.destination_handle is not None:
            logger.info(
                "Transfer Resume - Re-querying Destination",
                context=context,
                extra={
                    "transaction_id": run.destination_handle.transaction_id,
                    "cause_kind": outcome.cause_kind.value if outcome.cause_kind else None,
                },
            )
            destination_ledger = self.ledger(run.direction.destination_side)
            try:
                receipt = await destination_ledger.await_finality(run.destination_handle)
            except SubmissionRejectedError as e:
                logger.warning(
                    "Transfer Resume - Destination Rejected, Re-submitting",
                    context=context,
                    extra={"detail": e.message},
                )
            except BridgeError as e:
                # The credit may already be final; only an operator can settle it.
                return self._fail_partial(run, e)
            else:
                return self._finish_destination(run, receipt)

        run.destination_handle = None
        run.verification = await self.verification.verify(run.transfer_id)
        if not run.verification.destination_ok(run.direction):
            return self._fail(
                run,
                ErrorKind.DESTINATION_OPERATION_FAILED,
                run.verification.detail,
                cause_kind=ErrorKind.VERIFICATION_FAILED,
            )
        return await self._destination_step(run)

    # Request validation

    def _accept(
        self,
        run: _TransferRun,
        direction: Union[TransferDirection, str],
        amount: AmountInput,
        source_party: str,
        destination_party: str,
    ) -> None:
        try:
            run.direction = TransferDirection.parse(direction)
        except ValueError as e:
            raise InvalidTransferRequest(str(e), field="direction", value=direction, cause=e)

        if isinstance(amount, int) and not isinstance(amount, bool):
            if amount <= 0:
                raise InvalidTransferRequest(
                    "Amount must be greater than zero", field="amount", value=amount
                )
            run.amount = amount
        else:
            run.amount = parse_amount(amount, self.decimals)

        run.source_party = self._party(run.direction.source_side, source_party, "source_party")
        run.destination_party = self._party(
            run.direction.destination_side, destination_party, "destination_party"
        )

        missing = self.capabilities.missing()
        if missing:
            raise ConfigurationError(
                f"Bridge capability not configured for: {', '.join(missing)}",
                config_key="capabilities",
            )

        for side in (run.direction.source_side, run.direction.destination_side):
            limit = self.ledger(side).max_amount
            if limit is not None and run.amount > limit:
                raise InvalidTransferRequest(
                    f"Amount {run.amount} exceeds the {side.value} maximum of {limit} base units",
                    field="amount",
                    value=run.amount,
                )

    @staticmethod
    def _party(side: ChainSide, address: str, field_name: str) -> str:
        try:
            if side is ChainSide.ACCOUNT:
                return normalize_eth_address(address)
            return normalize_sui_address(address)
        except ValueError as e:
            raise InvalidTransferRequest(
                f"{field_name}: {e}", field=field_name, value=address, cause=e
            )

    # Source step

    async def _burn_on_account_chain(self, run: _TransferRun) -> Receipt:
        ledger = self.account_ledger
        capability_id = self.capabilities.account.capability_id
        context = run.context("source_operation")

        balance = await ledger.read_balance(run.source_party)
        logger.info(
            "Balance Check",
            context=context,
            extra={
                "address": run.source_party,
                "balance": str(balance),
                "required": str(run.amount),
                "sufficient": balance >= run.amount,
            },
        )

        if balance < run.amount:
            self._transition(run, TransferState.SOURCE_REMEDIATION)
            balance = await self._remediate(run, balance)
            if balance < run.amount:
                raise InsufficientAfterRemediationError(
                    "Insufficient balance even after minting",
                    required=run.amount,
                    available=balance,
                )
            self._transition(run, TransferState.SOURCE_OPERATION)

        run.source_handle = await ledger.submit(Burn(run.source_party, run.amount, capability_id))
        logger.info(
            "Token Burn - Transaction Submitted",
            context=context,
            extra={"tx_hash": run.source_handle.transaction_id, "amount": str(run.amount)},
        )
        return await ledger.await_finality(run.source_handle)

    async def _remediate(self, run: _TransferRun, balance: int) -> int:
        """Mint the shortfall once, then re-read the balance."""
        ledger = self.account_ledger
        context = run.context("source_remediation")
        shortfall = run.amount - balance
        logger.warning(
            "Balance Check - Insufficient, Minting Shortfall",
            context=context,
            extra={
                "address": run.source_party,
                "balance": str(balance),
                "shortfall": str(shortfall),
                "note": "auto-mint applies only when ethereum is the source chain",
            },
        )

        mint = Mint(run.source_party, shortfall, self.capabilities.account.capability_id)
        try:
            run.remediation_receipt = await ledger.execute(mint)
        except BridgeError as e:
            logger.error(
                "Token Mint - Failed",
                context=context,
                exception=e,
                extra={"error_kind": e.kind.value, "detail": describe_error(e)},
            )
        else:
            logger.info(
                "Token Mint - Transaction Confirmed",
                context=context,
                extra={
                    "tx_hash": run.remediation_receipt.transaction_id,
                    "block": run.remediation_receipt.block_reference,
                    "amount": str(shortfall),
                },
            )

        balance = await ledger.read_balance(run.source_party)
        logger.info(
            "Balance Check - After Mint",
            context=context,
            extra={"balance": str(balance), "required": str(run.amount)},
        )
        return balance

    async def _lock_on_object_chain(self, run: _TransferRun) -> Receipt:
        ledger = self.object_ledger
        context = run.context("source_operation")

        units = await ledger.list_spendable_units(run.source_party)
        unit = self.selector.select(units, run.amount)
        logger.info(
            "SUI->ETH Bridge - Coin Selected",
            context=context,
            extra={"coin_object_id": unit.unit_id, "coin_balance": str(unit.balance)},
        )

        lock = LockForBridge(
            unit, run.amount, run.destination_party, self.capabilities.object.capability_id
        )
        run.source_handle = await ledger.submit(lock)
        logger.info(
            "SUI->ETH Bridge - Transaction Submitted",
            context=context,
            extra={"digest": run.source_handle.transaction_id, "amount": str(run.amount)},
        )
        return await ledger.await_finality(run.source_handle)

    # Destination step

    async def _continue_with_receipt(self, run: _TransferRun, receipt: Receipt) -> TransferOutcome:
        run.source_receipt = receipt
        logger.info(
            "Source Operation - Finalized",
            context=run.context("source_operation"),
            extra={
                "chain": receipt.chain.value,
                "transaction_id": receipt.transaction_id,
                "block": receipt.block_reference,
                "amount": str(receipt.amount),
            },
        )
        self._transition(run, TransferState.DESTINATION_OPERATION)
        return await self._destination_step(run)

    async def _destination_step(self, run: _TransferRun) -> TransferOutcome:
        side = run.direction.destination_side
        ledger = self.ledger(side)
        capability_id = self.capabilities.for_side(side).capability_id
        try:
            payload = self.correlator.correlate(
                run.source_receipt, run.amount, run.destination_party, capability_id
            )
            run.destination_handle = await ledger.submit(payload)
            logger.info(
                "Destination Operation - Transaction Submitted",
                context=run.context("destination_operation"),
                extra={
                    "chain": side.value,
                    "operation": payload.kind.value,
                    "transaction_id": run.destination_handle.transaction_id,
                },
            )
            receipt = await ledger.await_finality(run.destination_handle)
        except BridgeError as e:
            return self._fail_partial(run, e)
        return self._finish_destination(run, receipt)

    def _finish_destination(self, run: _TransferRun, receipt: Receipt) -> TransferOutcome:
        run.destination_receipt = receipt
        if receipt.amount != run.source_receipt.amount:
            return self._fail(
                run,
                ErrorKind.DESTINATION_OPERATION_FAILED,
                f"Destination finalized {receipt.amount}, source finalized "
                f"{run.source_receipt.amount}",
                cause_kind=ErrorKind.MALFORMED_RECEIPT,
            )
        self._transition(run, TransferState.COMPLETED)
        logger.info(
            "Bridge Transfer - Complete",
            context=run.context("complete"),
            extra={
                "source_transaction": run.source_receipt.transaction_id,
                "destination_transaction": receipt.transaction_id,
                "amount": str(receipt.amount),
            },
        )
        return self._outcome(run, TransferStatus.COMPLETED)

    def _fail_partial(self, run: _TransferRun, error: BridgeError) -> TransferOutcome:
        detail = (
            f"Source {run.source_receipt.chain.value} transaction "
            f"{run.source_receipt.transaction_id} is final but the "
            f"{run.direction.destination_side.value} credit failed: {describe_error(error)}"
        )
        logger.critical(
            "Bridge Transfer - Partially Completed",
            context=run.context("destination_operation"),
            exception=error,
            extra={
                "source_transaction": run.source_receipt.transaction_id,
                "cause_kind": error.kind.value,
                "pending_destination": (
                    run.destination_handle.transaction_id if run.destination_handle else None
                ),
            },
        )
        return self._fail(
            run, ErrorKind.DESTINATION_OPERATION_FAILED, detail, cause_kind=error.kind
        )

    # State bookkeeping

    def _transition(self, run: _TransferRun, target: TransferState) -> None:
        if not can_transition(run.state, target):
            raise RuntimeError(f"Illegal transfer transition {run.state.value} -> {target.value}")
        logger.info(
            f"Transfer State - {target.value}",
            context=run.context("transition"),
            extra={"from": run.state.value, "to": target.value},
        )
        run.state = target
        run.history.append(target)

    def _fail(
        self,
        run: _TransferRun,
        kind: ErrorKind,
        detail: str,
        cause_kind: Optional[ErrorKind] = None,
    ) -> TransferOutcome:
        self._transition(run, TransferState.FAILED)
        logger.error(
            "Bridge Transfer - Failed",
            context=run.context("fail"),
            extra={
                "error_kind": kind.value,
                "cause_kind": cause_kind.value if cause_kind else None,
                "detail": detail,
                "partial": run.source_receipt is not None,
            },
        )
        return self._outcome(run, TransferStatus.FAILED, kind, detail, cause_kind)

    @staticmethod
    def _outcome(
        run: _TransferRun,
        status: TransferStatus,
        kind: Optional[ErrorKind] = None,
        detail: str = "",
        cause_kind: Optional[ErrorKind] = None,
    ) -> TransferOutcome:
        return TransferOutcome(
            transfer_id=run.transfer_id,
            status=status,
            direction=run.direction,
            amount=run.amount,
            source_party=run.source_party,
            destination_party=run.destination_party,
            state=run.state,
            error_kind=kind,
            detail=detail,
            cause_kind=cause_kind,
            source_receipt=run.source_receipt,
            destination_receipt=run.destination_receipt,
            source_handle=run.source_handle,
            destination_handle=run.destination_handle,
            remediation_receipt=run.remediation_receipt,
            verification=run.verification,
            history=list(run.history),
        )


class BridgeService:
    """Facade wiring settings, ledger adapters and the orchestrator together."""

    def __init__(
        self,
        settings: "BridgeSettings",
        account_ledger: LedgerAdapter,
        object_ledger: LedgerAdapter,
    ):
        self.settings = settings
        self.account_ledger = account_ledger
        self.object_ledger = object_ledger
        self.capabilities = settings.capabilities()
        self.orchestrator = TransferOrchestrator(
            account_ledger,
            object_ledger,
            self.capabilities,
            decimals=settings.token_decimals,
        )

    @classmethod
    def from_settings(
        cls, settings: "BridgeSettings", ethereum_session=None, sui_session=None
    ) -> "BridgeService":
        """Validate ``settings`` and build RPC-backed adapters for both chains."""
        from .chains.ethereum import EthereumLedgerAdapter
        from .chains.sui import SuiLedgerAdapter

        settings.validate()
        return cls(
            settings,
            EthereumLedgerAdapter.from_settings(settings, ethereum_session),
            SuiLedgerAdapter.from_settings(settings, sui_session),
        )

    def ledger(self, side: ChainSide) -> LedgerAdapter:
        return self.orchestrator.ledger(side)

    async def close(self) -> None:
        await self.account_ledger.close()
        await self.object_ledger.close()

    async def verify(self) -> VerificationResult:
        return await self.orchestrator.verification.verify()

    async def transfer(
        self,
        direction: Union[TransferDirection, str],
        amount: AmountInput,
        source_party: str,
        destination_party: str,
    ) -> TransferOutcome:
        return await self.orchestrator.request_transfer(
            direction, amount, source_party, destination_party
        )

    async def resume(self, outcome: TransferOutcome) -> TransferOutcome:
        return await self.orchestrator.resume(outcome)

    async def balances(
        self, ethereum_owner: Optional[str] = None, sui_owner: Optional[str] = None
    ) -> Dict[str, int]:
        """IBT balances in base units, keyed by chain name."""
        result = {}
        if ethereum_owner:
            result[ChainSide.ACCOUNT.value] = await self.account_ledger.read_balance(
                normalize_eth_address(ethereum_owner)
            )
        if sui_owner:
            result[ChainSide.OBJECT.value] = await self.object_ledger.read_balance(
                normalize_sui_address(sui_owner)
            )
        return result

    async def mint_test_tokens(
        self,
        chain: Union[ChainSide, str],
        owner: str,
        amount: Optional[AmountInput] = None,
    ) -> Receipt:
        """Mint test liquidity to ``owner``. Not part of any transfer."""
        side = chain if isinstance(chain, ChainSide) else ChainSide(str(chain).lower())
        if amount is None:
            amount = TEST_MINT_AMOUNTS[side]
        base_units = (
            amount
            if isinstance(amount, int) and not isinstance(amount, bool)
            else parse_amount(amount, self.settings.token_decimals)
        )
        capability_id = self.capabilities.for_side(side).capability_id

        if side is ChainSide.ACCOUNT:
            operation = Mint(owner, base_units, capability_id)
        else:
            # Test mints cite an all-zero source transaction.
            operation = BridgeMint(
                owner, base_units, bytes(SOURCE_TRANSACTION_LENGTH), capability_id
            )

        context = LogContext(component="bridge_service", operation="mint_test_tokens", chain=side.value)
        logger.info(
            "Test Token Mint - Initialize",
            context=context,
            extra={"owner": owner, "amount": str(base_units)},
        )
        receipt = await self.ledger(side).execute(operation)
        logger.info(
            "Test Token Mint - Complete",
            context=context,
            extra={"transaction_id": receipt.transaction_id, "block": receipt.block_reference},
        )
        return receipt
