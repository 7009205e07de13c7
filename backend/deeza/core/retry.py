"""Bounded retry for chain calls.

One combinator, parameterised per call site:
    await with_retry(lambda: gateway._transact(...), max_attempts=4)

There is no background retry queue. The caller's message waits for at most
`max_attempts * delay_seconds` before the last error propagates.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from deeza.core.config import settings
from deeza.core.exceptions import AUTHORITATIVE_REJECTIONS, GatewayNotConfigured

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """Authoritative chain rejections and configuration errors are final."""
    return not isinstance(exc, AUTHORITATIVE_REJECTIONS + (GatewayNotConfigured,))


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    label: str = "chain call",
    retry_on: Callable[[BaseException], bool] = is_retryable,
) -> T:
    """Run `operation` up to `max_attempts` times with a fixed delay in between.

    Args:
        operation: Zero-argument callable returning an awaitable
        max_attempts: Attempts before giving up (default settings.CHAIN_RETRY_ATTEMPTS)
        delay_seconds: Fixed pause between attempts (default settings.CHAIN_RETRY_DELAY_SECONDS)
        label: Name used in log lines
        retry_on: Predicate; errors it rejects are raised immediately

    Raises:
        The last error once attempts are exhausted.
    """
    attempts = max_attempts if max_attempts is not None else settings.CHAIN_RETRY_ATTEMPTS
    delay = delay_seconds if delay_seconds is not None else settings.CHAIN_RETRY_DELAY_SECONDS
    if attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            if not retry_on(e):
                logger.info(f"[Retry] {label}: not retrying {type(e).__name__}")
                raise
            logger.warning(f"[Retry] {label}: attempt {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                await asyncio.sleep(delay)

    raise last_error
