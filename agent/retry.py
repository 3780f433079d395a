"""
Generic async retry with linear backoff.

Available to integrations; the routing paths do not retry automatically.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_operation(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay_s: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """
    Await `operation()` up to `max_retries` times.

    Waits delay_s * attempt between attempts and re-raises the last error
    once attempts are exhausted.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")

    for attempt in range(1, max_retries + 1):
        try:
            return await operation()
        except retry_on as e:
            logger.warning(
                f"Operation failed (attempt {attempt}/{max_retries}): {e}",
                extra={"attempt": attempt, "error": str(e)},
            )
            if attempt == max_retries:
                raise
            await asyncio.sleep(delay_s * attempt)
    raise AssertionError("unreachable")
