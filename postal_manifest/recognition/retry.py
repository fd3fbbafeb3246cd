"""
Resilient Call Wrapper Module.

Retries a flaky, rate-limited asynchronous call with exponential backoff.

A failure is retried only if it carries a retryable ``FailureTag``
(rate limited, server unavailable, transport failure). The tag is set by
the transport that raised it; nothing here inspects error messages.
Anything else propagates on the first attempt.

When every attempt in the budget fails transiently the caller gets a
single ``RetryLimitExceededError`` (CONGESTION) with the last underlying
error chained as ``__cause__``.

The loop is strictly sequential: one outstanding call, and the wait is an
``await`` on the injected sleep so only the calling task is suspended.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.exceptions import FailureTag, RetryLimitExceededError

logger = get_logger(__name__)

T = TypeVar('T')

DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_INITIAL_DELAY = 1.5   # seconds
DEFAULT_BACKOFF_FACTOR = 1.5


def is_retryable(error: BaseException) -> bool:
    """
    True if ``error`` carries a retryable failure tag.

    Example:
        >>> is_retryable(RecognitionServiceError(FailureTag.RATE_LIMITED))
        True
        >>> is_retryable(ValueError("bad input"))
        False
    """
    tag = getattr(error, 'tag', None)
    return isinstance(tag, FailureTag) and tag.retryable


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
) -> T:
    """
    Run ``operation`` with retries on transient failures.

    Args:
        operation: Zero-argument callable returning an awaitable.
        max_attempts: Retry budget, including the first attempt.
        initial_delay: Wait before the second attempt, in seconds.
        backoff_factor: Multiplier applied to the delay after each wait.
        sleep: Awaitable sleep function (injected in tests).

    Returns:
        The operation's result.

    Raises:
        RetryLimitExceededError: After ``max_attempts`` retryable failures.
        Exception: Any non-retryable failure, unchanged, on first occurrence.
        ValueError: If ``max_attempts`` is less than 1.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    delay = initial_delay
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise

            last_error = e
            if attempt == max_attempts:
                break

            logger.warning(
                f"Transient error ({e.tag.value}). Retrying in {delay:.2f}s... "
                f"(Attempt {attempt}/{max_attempts})"
            )
            await sleep(delay)
            delay *= backoff_factor

    logger.error(f"Retry limit exceeded after {max_attempts} attempts: {last_error}")
    raise RetryLimitExceededError(max_attempts) from last_error


def configured_retry_settings() -> dict:
    """Read ``retry.*`` settings as keyword arguments for ``with_retry``."""
    from config import get_config

    return {
        'max_attempts': int(get_config("retry.max_attempts", DEFAULT_MAX_ATTEMPTS)),
        'initial_delay': float(get_config("retry.initial_delay", DEFAULT_INITIAL_DELAY)),
        'backoff_factor': float(get_config("retry.backoff_factor", DEFAULT_BACKOFF_FACTOR)),
    }
