"""
Fixed-size batch fan-out.

Items are processed in consecutive groups; each group runs concurrently
and the next group starts after a fixed pause. This is a flat rate
limit on upstream calls, not adaptive backpressure.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def run_in_batches(
    items: Sequence[T],
    func: Callable[[T], Awaitable[R]],
    batch_size: int,
    delay: float,
) -> list[R | BaseException]:
    """
    Apply `func` to every item, `batch_size` at a time.

    Args:
        items: Inputs, processed in order
        func: Coroutine function called once per item
        batch_size: Items awaited together
        delay: Seconds to sleep between batches (not after the last)

    Returns:
        One entry per item, in input order: the result, or the exception
        that item raised. One failing item never cancels its batch.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    results: list[R | BaseException] = []
    total_batches = (len(items) + batch_size - 1) // batch_size

    for index, start in enumerate(range(0, len(items), batch_size), start=1):
        batch = items[start : start + batch_size]
        logger.info("Processing batch %d/%d (%d items)", index, total_batches, len(batch))
        results.extend(await asyncio.gather(*(func(item) for item in batch), return_exceptions=True))
        if index < total_batches and delay > 0:
            await asyncio.sleep(delay)

    return results
