"""
Fan-out helpers shared by the paged collector and the batched executor.
"""

import asyncio
from contextlib import AbstractAsyncContextManager, nullcontext
from typing import Any, Awaitable, Iterable, TypeVar

T = TypeVar('T')


def concurrency_limit(max_concurrency: int | None) -> AbstractAsyncContextManager[Any]:
    """
    Return an async context manager that admits at most max_concurrency
    holders at once, or one that never blocks when max_concurrency is None.
    """
    if max_concurrency is None:
        return nullcontext()
    return asyncio.Semaphore(max_concurrency)


async def gather_or_cancel(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    """
    Run all awaitables concurrently and return their results in order.

    On the first failure every still-pending task is cancelled and awaited
    before the original exception is re-raised, so no call keeps running
    after its phase has failed.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        # Allow cancelled tasks to complete
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
