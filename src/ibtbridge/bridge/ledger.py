"""
Ledger adapter contract.

A ledger adapter is the only component that talks to a concrete chain. It
exposes a narrow capability surface (read balance, submit, await finality,
verify) and re-classifies every chain-specific failure into the bridge error
taxonomy before it reaches the orchestrator.
"""

import asyncio
import functools
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from ..logging import get_logger
from .bridge_types import ChainSide, ChainVerification, PendingHandle, Receipt, SpendableUnit
from .operations import TokenOperation

logger = get_logger(__name__)


class LedgerAdapter(ABC):
    """Uniform capability surface over one chain."""

    side: ChainSide

    @property
    def chain(self) -> str:
        return self.side.value

    @property
    def max_amount(self) -> Optional[int]:
        """Largest amount a single operation may carry, or None when unbounded."""
        return None

    @abstractmethod
    async def read_balance(self, owner: str) -> int:
        """Token balance of ``owner`` in base units. Raises ReadError/ChainUnavailableError."""

    @abstractmethod
    async def submit(self, operation: TokenOperation) -> PendingHandle:
        """Submit one operation. Raises SubmissionRejectedError/ChainUnavailableError."""

    @abstractmethod
    async def await_finality(self, handle: PendingHandle) -> Receipt:
        """Wait until ``handle`` is final under the chain's own rules.

        Raises SubmissionRejectedError when the chain reports failure and
        FinalityTimeoutError when the outcome is still unknown.
        """

    @abstractmethod
    async def verify(self) -> ChainVerification:
        """Check the bridge resources on this chain exist and are reachable."""

    async def list_spendable_units(self, owner: str) -> List[SpendableUnit]:
        """Coin objects owned by ``owner``. Only object-based chains have them."""
        raise NotImplementedError(f"{self.chain} ledger has no spendable units")

    async def close(self) -> None:
        """Release network resources held by the adapter."""

    async def execute(self, operation: TokenOperation) -> Receipt:
        """Submit ``operation`` and wait for its receipt."""
        handle = await self.submit(operation)
        return await self.await_finality(handle)

    def _check_operation_side(self, operation: TokenOperation) -> None:
        if operation.side is not self.side:
            raise ValueError(
                f"{operation.kind.value} targets the {operation.side.value} ledger, "
                f"not {self.chain}"
            )

    async def _run_blocking(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run a blocking RPC call on the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
