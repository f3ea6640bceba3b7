"""
Bounded worker-pool fan-out.

Example:
    async def save(item):
        await repo.save(item)

    async for err in run(10, items, save):
        if err is not None:
            logger.warning("save failed: %s", err)
"""

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ForEach = Callable[[T], Awaitable[None]]

_DONE = object()


async def run(
    workers: int,
    items: AsyncIterable[T],
    for_each: ForEach[T],
) -> AsyncIterator[Optional[Exception]]:
    """
    Process ``items`` with ``workers`` concurrent tasks.

    Yields one result per item in completion order. An exception raised by
    the ``items`` iterable itself stops further pulls; items already pulled
    still finish and yield their results, then the exception is re-raised.
    Closing the generator early cancels the remaining workers.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    iterator = items.__aiter__()
    pull_lock = asyncio.Lock()
    results: asyncio.Queue = asyncio.Queue(maxsize=workers)
    source_errors: List[Exception] = []

    async def worker() -> None:
        while True:
            # Async iterators do not support concurrent __anext__ calls.
            async with pull_lock:
                if source_errors:
                    return
                try:
                    item = await iterator.__anext__()
                except StopAsyncIteration:
                    return
                except Exception as exc:
                    source_errors.append(exc)
                    return
            try:
                await for_each(item)
            except Exception as exc:
                await results.put(exc)
            else:
                await results.put(None)

    tasks: List[asyncio.Task] = [asyncio.create_task(worker()) for _ in range(workers)]

    async def close_when_done() -> None:
        try:
            await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await results.put(_DONE)

    closer = asyncio.create_task(close_when_done())
    try:
        while True:
            result = await results.get()
            if result is _DONE:
                break
            yield result
        await closer
        if source_errors:
            raise source_errors[0]
    finally:
        pending = [t for t in tasks + [closer] if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug("cancelling %d batch task(s)", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
