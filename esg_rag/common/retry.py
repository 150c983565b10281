"""
Async retry with capped exponential back-off for provider calls.

Every embedding and language-model call goes through ``retry_async``.
Transient failures (rate limits, timeouts, 5xx) are retried up to a fixed
number of attempts; anything else fails on the first attempt. Either way
the caller sees a ProviderError chained to the last underlying error.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..exceptions import ESGRagError, ProviderError


logger = logging.getLogger(__name__)

MAX_ATTEMPTS: int = 3
BASE_DELAY: float = 1.0       # seconds, first back-off delay
MAX_DELAY: float = 30.0
BACKOFF_FACTOR: float = 2.0

# HTTP status codes worth retrying on
RETRYABLE_STATUS_CODES = {408, 409, 429, 500, 502, 503, 504}

_RETRYABLE_TYPE_NAMES = {
    "RateLimitError",
    "APITimeoutError",
    "APIConnectionError",
    "InternalServerError",
    "TimeoutError",
    "ConnectionError",
}


def is_transient_error(exc: BaseException) -> bool:
    """Return True if the exception looks like a transient provider failure."""
    if isinstance(exc, ESGRagError):
        return False
    if isinstance(exc, (asyncio.TimeoutError, ConnectionError)):
        return True
    if type(exc).__name__ in _RETRYABLE_TYPE_NAMES:
        return True
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return status_code in RETRYABLE_STATUS_CODES
    return False


def backoff_delay(attempt: int, base_delay: float = BASE_DELAY, max_delay: float = MAX_DELAY) -> float:
    """Delay before retry number ``attempt`` (1-based): base * 2^(attempt-1), capped."""
    return min(base_delay * (BACKOFF_FACTOR ** (attempt - 1)), max_delay)


async def retry_async(
    operation: Callable[[], Awaitable[Any]],
    provider: str,
    max_attempts: int = MAX_ATTEMPTS,
    base_delay: float = BASE_DELAY,
    max_delay: float = MAX_DELAY,
    is_retryable: Callable[[BaseException], bool] = is_transient_error,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> Any:
    """
    Await ``operation()`` with automatic retry.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        provider: Provider name used in log lines and the raised error
        max_attempts: Total attempts including the first one
        base_delay: First back-off delay in seconds
        max_delay: Cap for a single back-off delay
        is_retryable: Predicate deciding whether an error is worth retrying
        sleep: Awaitable sleep (injectable for tests)

    Returns:
        Whatever the operation returns

    Raises:
        ProviderError: When the attempts are exhausted or the error is not retryable
    """
    sleep = sleep or asyncio.sleep
    last_exc: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            last_exc = exc

            if not is_retryable(exc):
                logger.warning(f"{provider} call failed with non-retryable error: {exc}")
                raise ProviderError(
                    provider, f"{provider} call failed: {exc}", attempts=attempt, last_error=exc
                ) from exc

            if attempt < max_attempts:
                delay = backoff_delay(attempt, base_delay, max_delay)
                logger.warning(
                    f"{provider} call failed (attempt {attempt}/{max_attempts}): {exc}, "
                    f"retrying in {delay:.1f}s"
                )
                await sleep(delay)
            else:
                logger.error(f"{provider} call failed after {max_attempts} attempts: {exc}")

    raise ProviderError(
        provider,
        f"{provider} call failed after {max_attempts} attempts",
        attempts=max_attempts,
        last_error=last_exc,
    ) from last_exc
