"""
Fixed-size chunking of an async stream.

Example:
    async def insert_many(rows):
        await db.insert_many(rows)

    async for err in chunk(500, rows, insert_many):
        ...
"""

from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, List, Optional, TypeVar

T = TypeVar("T")

Exec = Callable[[List[T]], Awaitable[None]]


async def _execute(execute: Exec[T], bucket: List[T]) -> Optional[Exception]:
    try:
        await execute(bucket)
    except Exception as exc:
        return exc
    return None


async def chunk(
    size: int,
    items: AsyncIterable[T],
    execute: Exec[T],
) -> AsyncIterator[Optional[Exception]]:
    """
    Call ``execute`` each time ``size`` items have been collected.

    A final, smaller bucket is executed for any remainder once ``items`` is
    exhausted. No items means no calls. Each bucket is a new list, so
    ``execute`` may keep a reference to it.
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")

    bucket: List[T] = []
    async for item in items:
        bucket.append(item)
        if len(bucket) == size:
            yield await _execute(execute, bucket)
            bucket = []

    if bucket:
        yield await _execute(execute, bucket)
