"""Polling and retry helpers for the IBT bridge.

Only idempotent work goes through these helpers: read-only queries and
re-queries of an already submitted transaction. A value-moving operation is
never re-submitted from here.
"""

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Type

from .exceptions import ChainUnavailableError


@dataclass
class RetryPolicy:
    """Retry policy configuration."""

    max_retries: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = False
    retryable_exceptions: List[Type[BaseException]] = field(
        default_factory=lambda: [ChainUnavailableError]
    )

    def get_delay(self, attempt: int) -> float:
        """Get delay for the given attempt."""
        if attempt <= 0:
            return 0.0

        # Exponential backoff
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))

        # Cap at max delay
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay *= random.uniform(0.5, 1.5)

        return delay

    def is_retryable(self, error: BaseException) -> bool:
        """Check whether an error may be retried under this policy."""
        return isinstance(error, tuple(self.retryable_exceptions))


@dataclass
class BackoffStrategy:
    """Backoff strategy for polling loops."""

    strategy_type: str = "fixed"  # exponential, linear, fixed
    base_delay: float = 1.0
    max_delay: float = 15.0
    multiplier: float = 2.0
    jitter: bool = False

    def get_delay(self, attempt: int) -> float:
        """Get delay for the given attempt."""
        if attempt <= 0:
            return 0.0

        if self.strategy_type == "exponential":
            delay = self.base_delay * (self.multiplier ** (attempt - 1))
        elif self.strategy_type == "linear":
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay

        delay = min(delay, self.max_delay)

        if self.jitter:
            delay *= random.uniform(0.5, 1.5)

        return delay


async def retry_async(
    func: Callable[[], Awaitable[Any]], policy: Optional[RetryPolicy] = None
) -> Any:
    """Run an idempotent coroutine factory, retrying retryable failures."""
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not policy.is_retryable(e) or attempt >= policy.max_retries:
                raise
            attempt += 1
            await asyncio.sleep(policy.get_delay(attempt))


async def poll_until(
    query: Callable[[], Awaitable[Tuple[bool, Any]]],
    timeout: float,
    backoff: Optional[BackoffStrategy] = None,
) -> Tuple[bool, Any]:
    """Re-run ``query`` until it reports done or ``timeout`` seconds pass.

    ``query`` returns ``(done, value)``. The last ``(done, value)`` pair is
    returned, so a caller can tell a timeout (``done`` is False) from a result.
    """
    backoff = backoff or BackoffStrategy()
    deadline = time.monotonic() + timeout
    attempt = 0
    while True:
        done, value = await query()
        if done:
            return True, value

        attempt += 1
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False, value
        await asyncio.sleep(min(backoff.get_delay(attempt), remaining))
