"""Retry utilities for model calls.

Transient failures (network drops, timeouts, provider rate limits) are retried
with exponential backoff. Anything else is raised on the first attempt so the
calling stage can downgrade it to a partial failure.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT = 1  # seconds
DEFAULT_MAX_WAIT = 20  # seconds

# Caps in-flight model calls per event loop. Chunk extraction fans out with
# asyncio.gather, so a long document would otherwise open one call per chunk.
DEFAULT_MAX_CONCURRENT_CALLS = 8
# Keyed by the loop object; entries for closed loops are pruned on lookup.
_loop_semaphores: dict[asyncio.AbstractEventLoop, asyncio.Semaphore] = {}


class RateLimitError(Exception):
    """Raised when the model provider rejects a call for quota reasons."""

    def __init__(
        self, message: str = "Rate limit exceeded", retry_after: float | None = None
    ):
        super().__init__(message)
        self.retry_after = retry_after


RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    RateLimitError,
)


def get_call_semaphore(
    max_concurrent: int = DEFAULT_MAX_CONCURRENT_CALLS,
) -> asyncio.Semaphore:
    """Return the model-call semaphore bound to the running event loop.

    Args:
        max_concurrent: Maximum concurrent model calls

    Returns:
        Semaphore for the current loop
    """
    loop = asyncio.get_running_loop()
    for stale in [other for other in _loop_semaphores if other.is_closed()]:
        del _loop_semaphores[stale]

    semaphore = _loop_semaphores.get(loop)
    if semaphore is None:
        semaphore = asyncio.Semaphore(max_concurrent)
        _loop_semaphores[loop] = semaphore
        logger.debug(f"Model call limiter for loop {id(loop)}: {max_concurrent} slots")
    return semaphore


def get_async_retry(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_wait: float = DEFAULT_MIN_WAIT,
    max_wait: float = DEFAULT_MAX_WAIT,
) -> AsyncRetrying:
    """Create the tenacity retry controller used for model calls.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum backoff in seconds
        max_wait: Maximum backoff in seconds

    Returns:
        AsyncRetrying instance
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        reraise=True,
    )


def describe_exception(e: BaseException) -> str:
    """Render an exception for log lines, including its cause and status code."""
    msg = str(e).strip() or type(e).__name__

    cause = e.__cause__
    if cause is not None and str(cause).strip():
        msg = f"{msg} (caused by: {str(cause).strip()})"

    status = getattr(e, "status_code", None) or getattr(e, "code", None)
    if status is not None:
        msg = f"[{status}] {msg}"

    return msg


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    operation_name: str = "model call",
    use_rate_limit: bool = True,
    **kwargs: Any,
) -> T:
    """Run an async callable, retrying transient failures.

    Args:
        func: Async function to execute
        *args: Positional arguments for the function
        max_attempts: Maximum number of attempts
        operation_name: Name used in log lines
        use_rate_limit: Whether to hold a slot of the per-loop call semaphore
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the function

    Raises:
        The last exception once retries are exhausted, or any non-retryable error
    """
    semaphore = get_call_semaphore() if use_rate_limit else None
    attempt = 0

    async for attempt_ctx in get_async_retry(max_attempts=max_attempts):
        with attempt_ctx:
            attempt += 1
            if attempt > 1:
                logger.info(f"Retrying {operation_name} ({attempt}/{max_attempts})")
            try:
                if semaphore is not None:
                    async with semaphore:
                        return await func(*args, **kwargs)
                return await func(*args, **kwargs)
            except RETRYABLE_EXCEPTIONS as e:
                logger.warning(
                    f"{operation_name} failed ({attempt}/{max_attempts}): "
                    f"{describe_exception(e)}"
                )
                raise
            except Exception as e:
                logger.error(
                    f"{operation_name} failed with non-retryable error: "
                    f"{describe_exception(e)}"
                )
                raise

    raise RuntimeError(f"{operation_name} failed after {max_attempts} attempts")
