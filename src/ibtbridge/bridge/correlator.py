"""
Receipt correlation.

Turns a finalized source-chain receipt into the destination-chain operation
payload. Pure and deterministic: no I/O, identical inputs give byte-identical
payloads. Inconsistent input fails fast with MalformedReceiptError instead of
reaching a chain adapter.
"""

from typing import Union

from ..errors import InvalidTransferRequest, MalformedReceiptError
from .bridge_types import ChainSide, Receipt
from .encoding import b58encode, eth_hash_bytes, sui_digest_bytes
from .operations import BridgeMint, Mint

DestinationPayload = Union[BridgeMint, Mint]


class ReceiptCorrelator:
    """Packages a source receipt into the destination operation."""

    def correlate(
        self,
        source_receipt: Receipt,
        amount: int,
        destination_recipient: str,
        capability_id: str,
    ) -> DestinationPayload:
        if not isinstance(source_receipt, Receipt):
            raise MalformedReceiptError(
                "Source receipt is missing", field="source_receipt", value=source_receipt
            )
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise MalformedReceiptError(
                f"Requested amount {amount!r} is not a positive integer",
                field="amount",
                value=amount,
            )
        if source_receipt.amount != amount:
            raise MalformedReceiptError(
                f"Source receipt finalized {source_receipt.amount}, "
                f"transfer requested {amount}",
                field="amount",
                value=source_receipt.amount,
            )

        if source_receipt.chain is ChainSide.ACCOUNT:
            source_tx = self._ethereum_source(source_receipt.transaction_id)
            return self._build(
                BridgeMint,
                recipient=destination_recipient,
                amount=amount,
                source_transaction=source_tx,
                capability_id=capability_id,
            )

        digest = self._sui_source(source_receipt.transaction_id)
        return self._build(
            Mint,
            recipient=destination_recipient,
            amount=amount,
            capability_id=capability_id,
            source_reference=digest,
        )

    @staticmethod
    def _ethereum_source(transaction_id: str) -> bytes:
        try:
            return eth_hash_bytes(transaction_id)
        except ValueError as e:
            raise MalformedReceiptError(
                str(e), field="transaction_id", value=transaction_id, cause=e
            )

    @staticmethod
    def _sui_source(transaction_id: str) -> str:
        try:
            return b58encode(sui_digest_bytes(transaction_id))
        except ValueError as e:
            raise MalformedReceiptError(
                str(e), field="transaction_id", value=transaction_id, cause=e
            )

    @staticmethod
    def _build(payload_type, **fields) -> DestinationPayload:
        try:
            return payload_type(**fields)
        except InvalidTransferRequest as e:
            raise MalformedReceiptError(
                f"Cannot build {payload_type.__name__} payload: {e.message}",
                field=e.field,
                value=e.value,
                cause=e,
            )


def correlate(
    source_receipt: Receipt, amount: int, destination_recipient: str, capability_id: str
) -> DestinationPayload:
    """Module-level shortcut for ``ReceiptCorrelator().correlate``."""
    return ReceiptCorrelator().correlate(
        source_receipt, amount, destination_recipient, capability_id
    )
