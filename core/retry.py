"""
Core Module - Bounded Retry.

Every network boundary (record store read, object put, warehouse call)
is wrapped here. Only TransientIOError is retried; anything else
propagates on the first failure.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .exceptions import TransientIOError


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    backoff_base: float = 1.0,
    description: str = "operation",
) -> T:
    """
    Await operation(), retrying transient failures with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory
        attempts: Total attempts, including the first
        backoff_base: Delay before the second attempt; doubles afterwards
        description: Label for log lines

    Raises:
        TransientIOError: the last transient failure once attempts run out
    """
    last_error: Optional[TransientIOError] = None

    for attempt in range(max(attempts, 1)):
        try:
            return await operation()
        except TransientIOError as e:
            last_error = e
            if attempt + 1 >= attempts:
                break

            wait_time = backoff_base * (2 ** attempt)
            logger.warning(
                f"[{description}] Retry {attempt + 1}/{attempts - 1} "
                f"in {wait_time:.1f}s: {e.message}"
            )
            await asyncio.sleep(wait_time)

    logger.error(f"[{description}] Failed after {attempts} attempts")
    raise last_error
