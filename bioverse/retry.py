"""Bounded retry with exponential backoff for a single outbound call.

Retry is about repeating the *same* request after a transient failure. It
knows nothing about providers; moving on to a different source is the
fallback resolver's job.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from bioverse.exceptions import TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delay(base_delay: float, attempt_index: int) -> float:
    """Delay before the retry that follows attempt ``attempt_index`` (0-based)."""
    return base_delay * (2 ** attempt_index)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    retry_on: tuple[type[BaseException], ...] = (TransientProviderError,),
    sleep: Sleep = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Await ``operation()`` up to ``max_attempts`` times.

    Only exceptions listed in ``retry_on`` trigger another attempt; anything
    else propagates immediately. Between attempts the wrapper waits
    ``base_delay * 2**attempt_index`` seconds. When the budget is spent the
    last exception is re-raised.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last_exc: BaseException | None = None
    for attempt in range(max_attempts):
        try:
            return await operation()
        except retry_on as exc:
            last_exc = exc
            if attempt < max_attempts - 1:
                delay = backoff_delay(base_delay, attempt)
                logger.warning(
                    "%s failed (attempt %d/%d): %s - retrying in %.2fs",
                    description, attempt + 1, max_attempts, exc, delay,
                )
                await sleep(delay)
            else:
                logger.warning(
                    "%s failed (attempt %d/%d): %s - giving up",
                    description, attempt + 1, max_attempts, exc,
                )

    assert last_exc is not None
    raise last_exc
