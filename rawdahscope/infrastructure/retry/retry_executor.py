"""
Bounded retry with exponential backoff for async operations.

The executor knows nothing about what it retries: it takes a
zero-argument coroutine function and a ``RetryPolicy`` and reports the
outcome as a ``FetchAttemptResult`` instead of raising.

Wait before attempt ``n + 1`` (``n`` failed attempts so far)::

    initial_delay * backoff_factor ** (n - 1)

so with ``initial_delay=1`` and ``backoff_factor=2`` the waits are
1s, 2s, 4s, ... Jitter is off by default and, when enabled, keeps each
wait within [base / 2, base].
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from loguru import logger
from pydantic import BaseModel, Field

OnRetry = Callable[[int, float, BaseException], None]
Sleep = Callable[[float], Awaitable[Any]]


class RetryPolicy(BaseModel):
    """Retry budget and backoff shape."""

    retries: int = Field(3, ge=1, description="Maximum number of attempts")
    initial_delay: float = Field(1.0, ge=0, description="First wait (s)")
    backoff_factor: float = Field(2.0, ge=1, description="Wait multiplier")
    jitter: bool = Field(False, description="Randomise waits in [b/2, b]")

    def delay_for(self, attempt_index: int) -> float:
        """Base wait after the attempt with 0-based ``attempt_index``."""
        return self.initial_delay * self.backoff_factor**attempt_index


@dataclass
class FetchAttemptResult:
    """Outcome of one executor invocation (never persisted)."""

    success: bool
    attempts: int
    data: Any = None
    error: BaseException | None = None


async def execute_with_retry(
    operation: Callable[[], Awaitable[Any]],
    policy: RetryPolicy | None = None,
    on_retry: OnRetry | None = None,
    sleep: Sleep = asyncio.sleep,
) -> FetchAttemptResult:
    """
    Run ``operation`` until it succeeds or the retry budget is spent.

    Args:
        operation: Zero-argument coroutine function to invoke
        policy: Retry budget and backoff (defaults to RetryPolicy())
        on_retry: Observer called as ``on_retry(attempt, wait_s, error)``
            before each wait; it has no effect on control flow
        sleep: Awaitable sleep (injectable for tests)

    Returns:
        FetchAttemptResult with ``success=True`` and the data on the first
        success, or ``success=False`` with the last error and
        ``attempts == policy.retries`` once the budget is exhausted.
    """
    policy = policy or RetryPolicy()

    for attempt_index in range(policy.retries):
        try:
            data = await operation()
            return FetchAttemptResult(
                success=True, attempts=attempt_index + 1, data=data
            )
        except Exception as e:
            if attempt_index == policy.retries - 1:
                return FetchAttemptResult(
                    success=False, attempts=policy.retries, error=e
                )

            wait = policy.delay_for(attempt_index)
            if policy.jitter:
                wait = random.uniform(wait / 2, wait)

            if on_retry is not None:
                try:
                    on_retry(attempt_index + 1, wait, e)
                except Exception as hook_error:
                    logger.warning(f"on_retry hook raised: {hook_error}")

            await sleep(wait)

    # retries >= 1 is enforced by RetryPolicy, the loop always returns
    raise RuntimeError("Retry loop exited without a result")
