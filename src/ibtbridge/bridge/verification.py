"""
Pre-flight verification of bridge resources on both chains.

Both chains are interrogated concurrently; the result is never cached
because deployment state can change between transfers.
"""

import asyncio

from ..errors import describe_error
from ..logging import LogContext, get_logger
from .bridge_types import ChainSide, ChainVerification, VerificationResult
from .ledger import LedgerAdapter

logger = get_logger(__name__)


class VerificationStage:
    """Runs ``verify()`` on both ledger adapters."""

    def __init__(self, account_ledger: LedgerAdapter, object_ledger: LedgerAdapter):
        self.account_ledger = account_ledger
        self.object_ledger = object_ledger

    async def verify(self, correlation_id: str = None) -> VerificationResult:
        """Verify both sides. An adapter that raises counts as a failed side."""
        account, obj = await asyncio.gather(
            self._verify_side(self.account_ledger, ChainSide.ACCOUNT),
            self._verify_side(self.object_ledger, ChainSide.OBJECT),
        )
        result = VerificationResult(account=account, object=obj)

        context = LogContext(
            component="verification", operation="verify", correlation_id=correlation_id
        )
        extra = {
            "ethereum_ok": account.ok,
            "sui_ok": obj.ok,
            "detail": result.detail,
        }
        if result.ok:
            logger.info("Contract Verification - Complete", context=context, extra=extra)
        else:
            logger.error("Contract Verification - Failed", context=context, extra=extra)
        for warning in account.warnings + obj.warnings:
            logger.warning(
                "Contract Verification - Warning", context=context, extra={"warning": warning}
            )
        return result

    async def _verify_side(self, ledger: LedgerAdapter, side: ChainSide) -> ChainVerification:
        try:
            return await ledger.verify()
        except Exception as e:
            logger.error(
                "Contract Verification - Unreachable",
                context=LogContext(component="verification", chain=side.value),
                exception=e,
            )
            return ChainVerification(side=side, ok=False, detail=describe_error(e))
