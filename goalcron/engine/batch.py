"""Bounded-concurrency batch execution.

Per-item operations against the Todoist API are issued at most
``concurrency`` at a time to stay under the API's rate limits.
"""

import asyncio
from typing import Awaitable, Callable, Iterable, List, TypeVar

from goalcron.models.constants import DEFAULT_CONCURRENCY

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int = DEFAULT_CONCURRENCY,
) -> List[R]:
    """Run ``worker`` over every item with at most ``concurrency`` in flight.

    Workers are expected to turn their own failures into results; an
    exception escaping a worker propagates to the caller once every other
    item has settled.

    Args:
        items: Items to process
        worker: Coroutine function applied to each item
        concurrency: Maximum simultaneous in-flight workers

    Returns:
        Worker results in input order
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")

    semaphore = asyncio.Semaphore(concurrency)

    async def gated(item: T) -> R:
        async with semaphore:
            return await worker(item)

    results = await asyncio.gather(*(gated(item) for item in items), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
