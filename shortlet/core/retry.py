"""Exponential backoff for transient storage failures."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from shortlet.config import settings
from shortlet.core.exceptions import TransientStorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> T:
    """Run ``operation``, retrying only on TransientStorageError.

    Args:
        operation: Zero-argument coroutine factory (called once per attempt)
        operation_name: Name for logging
        attempts: Total attempts including the first
        base_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound for any single delay

    Returns:
        Whatever the operation returns

    Raises:
        TransientStorageError: If every attempt failed transiently
    """
    attempts = attempts if attempts is not None else settings.storage_retry_attempts
    delay = base_delay if base_delay is not None else settings.storage_retry_base_delay
    max_delay = max_delay if max_delay is not None else settings.storage_retry_max_delay

    for attempt in range(1, attempts + 1):
        try:
            result = await operation()
            if attempt > 1:
                logger.info(f"{operation_name} succeeded after {attempt} attempts")
            return result
        except TransientStorageError as exc:
            if attempt >= attempts:
                logger.error(f"{operation_name} failed after {attempt} attempts: {exc}")
                raise
            logger.warning(
                f"{operation_name} failed (attempt {attempt}/{attempts}), "
                f"retrying in {delay:.2f}s: {exc}"
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, max_delay)

    raise TransientStorageError(f"{operation_name}: no attempts made")
