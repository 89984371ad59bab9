"""
Chunked concurrency helpers.
"""

import asyncio
from typing import Awaitable, Callable, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_in_chunks(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    chunk_size: int,
    return_exceptions: bool = False,
) -> List[R]:
    """
    Run ``worker`` over ``items`` with at most ``chunk_size`` in flight.

    Chunks run one after another; results keep the input order.
    """
    items = list(items)
    chunk_size = max(chunk_size, 1)
    results: List[R] = []
    for start in range(0, len(items), chunk_size):
        chunk = items[start:start + chunk_size]
        results.extend(
            await asyncio.gather(*(worker(item) for item in chunk), return_exceptions=return_exceptions)
        )
    return results


async def gather_or_cancel(aws: Iterable[Awaitable[R]]) -> List[R]:
    """
    Like ``asyncio.gather`` but the first failure cancels every sibling.

    The siblings are awaited before the error is re-raised, so nothing keeps
    running once this returns.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
