"""Retry and timeout combinators for session acquisition.

``with_retry`` knows nothing about browsers: it re-invokes a zero-argument
coroutine function under a ``RetryPolicy``. ``with_timeout`` races any
awaitable against a wall-clock bound. Acquisition layers the first under
the second so the overall deadline wins over any remaining attempts.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior.

    ``backoff_factor`` of 1.0 gives a fixed delay between attempts.
    """

    max_attempts: int = 3
    delay_seconds: float = 2.0
    backoff_factor: float = 1.0
    max_delay_seconds: float = 30.0

    def delay_for(self, attempt: int) -> float:
        """Delay after a failed attempt (1-indexed)."""
        delay = self.delay_seconds * (self.backoff_factor ** (attempt - 1))
        return max(0.0, min(delay, self.max_delay_seconds))


def _always_retry(_error: Exception) -> bool:
    return True


async def with_retry(
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    should_retry: Callable[[Exception], bool] = _always_retry,
    on_retry: Callable[[int, Exception, float], None] | None = None,
    operation_name: str = "operation",
) -> T:
    """Execute an async function, retrying failures under ``policy``.

    Args:
        func: Async function to execute (takes no arguments).
        policy: Retry policy (default: 3 attempts, 2s fixed delay).
        should_retry: Predicate deciding whether an error is retryable.
        on_retry: Optional callback called before each retry with
                  (attempt, exception, delay).
        operation_name: Name for logging.

    Returns:
        Result from successful function execution.

    Raises:
        Exception: The last exception if all attempts fail, or the first
            non-retryable one.
    """
    policy = policy or RetryPolicy()
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await func()
        except Exception as e:
            last_error = e

            if not should_retry(e):
                logger.debug(
                    "retry_not_retryable",
                    extra={
                        "operation": operation_name,
                        "attempt": attempt,
                        "error.type": type(e).__name__,
                    },
                )
                raise

            if attempt >= policy.max_attempts:
                logger.warning(
                    "retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": policy.max_attempts,
                        "error.message": str(e),
                        "error.type": type(e).__name__,
                    },
                )
                raise

            delay = policy.delay_for(attempt)
            logger.info(
                "retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "retry_delay_s": round(delay, 2),
                    "error.message": str(e),
                    "error.type": type(e).__name__,
                },
            )
            if on_retry:
                on_retry(attempt, e, delay)
            await asyncio.sleep(delay)

    # Should never reach here, but satisfy type checker
    assert last_error is not None
    raise last_error


async def with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float,
    *,
    on_timeout: Callable[[], Exception] | None = None,
) -> T:
    """Race ``awaitable`` against a timer.

    On expiry the in-flight work is cancelled and its result discarded.

    Raises:
        The exception built by ``on_timeout``, or TimeoutError.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except TimeoutError as e:
        if on_timeout is None:
            raise
        raise on_timeout() from e
