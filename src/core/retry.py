"""Async retry with exponential backoff."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from core.errors import ErrorCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    attempts: int = 3,
    base_delay: float = 1.0,
    backoff: float = 2.0,
    should_retry: Callable[[Exception, int], bool] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call ``fn`` up to ``attempts`` times, waiting ``base_delay * backoff**n`` between tries.

    ``should_retry(error, attempt)`` can veto a retry (attempt is 0-based).
    The last error is re-raised once attempts are exhausted or vetoed.
    Cancellation is never retried.
    """
    attempts = max(1, attempts)
    last_error: Exception | None = None

    for attempt in range(attempts):
        try:
            return await fn()
        except Exception as error:
            last_error = error
            retryable = should_retry(error, attempt) if should_retry else True
            if attempt >= attempts - 1 or not retryable:
                break

            wait = base_delay * (backoff**attempt)
            logger.warning(
                "Attempt %d/%d failed: %s; retrying in %.1fs",
                attempt + 1,
                attempts,
                error,
                wait,
                extra={"category": ErrorCategory.NETWORK, "context": {"attempt": attempt + 1}},
            )
            await sleep(wait)

    if last_error is None:
        raise RuntimeError("with_retry made no attempts")
    raise last_error
