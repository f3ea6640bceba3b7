"""
pipekit - Batch Helper Unit Tests
==================================

What we test:
    ✅ run() processes every item and reports per-item errors
    ✅ run() never exceeds the worker count
    ✅ chunk() bucket boundaries and remainder handling
    ✅ reduce() folds with index access
"""

import asyncio

import pytest

from pipekit.batch import chunk, reduce, run


async def aiter_of(items):
    for item in items:
        yield item


async def collect(agen):
    return [result async for result in agen]


class TestRun:
    @pytest.mark.asyncio
    async def test_all_items_processed(self):
        seen = []

        async def for_each(item):
            await asyncio.sleep(0)
            seen.append(item)

        results = await collect(run(3, aiter_of(range(10)), for_each))

        assert results == [None] * 10
        assert sorted(seen) == list(range(10))

    @pytest.mark.asyncio
    async def test_errors_are_yielded(self):
        """Failing items should be reported without stopping the rest."""
        async def for_each(item):
            if item % 2:
                raise ValueError(f"odd {item}")

        results = await collect(run(2, aiter_of(range(6)), for_each))

        errors = [r for r in results if r is not None]
        assert len(results) == 6
        assert sorted(str(e) for e in errors) == ["odd 1", "odd 3", "odd 5"]

    @pytest.mark.asyncio
    async def test_concurrency_bounded_by_workers(self):
        """No more than ``workers`` callbacks should run at once."""
        active = 0
        peak = 0

        async def for_each(item):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.001)
            active -= 1

        await collect(run(4, aiter_of(range(20)), for_each))

        assert peak == 4

    @pytest.mark.asyncio
    async def test_empty_input(self):
        async def for_each(item):
            raise AssertionError("not called")

        assert await collect(run(2, aiter_of([]), for_each)) == []

    @pytest.mark.asyncio
    async def test_iterator_failure_is_raised(self):
        """Errors from the source iterable should be raised, not yielded."""
        async def broken():
            yield 1
            raise RuntimeError("source closed")

        async def for_each(item):
            return None

        with pytest.raises(RuntimeError, match="source closed"):
            await collect(run(1, broken(), for_each))

    @pytest.mark.asyncio
    async def test_pulled_items_finish_before_source_error(self):
        """Items pulled before the source fails still report their results."""
        completed = []

        async def broken():
            for i in range(6):
                yield i
            raise RuntimeError("source closed")

        async def for_each(item):
            await asyncio.sleep(0.01 * item)
            completed.append(item)

        results = []
        with pytest.raises(RuntimeError, match="source closed"):
            async for result in run(4, broken(), for_each):
                results.append(result)

        assert sorted(completed) == list(range(6))
        assert results == [None] * 6

    @pytest.mark.asyncio
    async def test_invalid_worker_count(self):
        async def for_each(item):
            return None

        with pytest.raises(ValueError):
            await collect(run(0, aiter_of([1]), for_each))


class TestChunk:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "size,count,calls,last_len",
        [
            (2, 2, 1, 2),
            (2, 3, 2, 1),
            (2, 1, 1, 1),
            (2, 0, 0, None),
            (1, 3, 3, 1),
        ],
    )
    async def test_bucket_boundaries(self, size, count, calls, last_len):
        """Full buckets execute as they fill; the remainder executes last."""
        buckets = []

        async def execute(bucket):
            buckets.append(bucket)

        results = await collect(chunk(size, aiter_of(range(count)), execute))

        assert len(buckets) == calls
        assert results == [None] * calls
        if last_len is not None:
            assert len(buckets[-1]) == last_len
        assert [i for b in buckets for i in b] == list(range(count))

    @pytest.mark.asyncio
    async def test_errors_are_yielded(self):
        async def execute(bucket):
            if 2 in bucket:
                raise ValueError("bad bucket")

        results = await collect(chunk(2, aiter_of(range(5)), execute))

        assert results[0] is None
        assert isinstance(results[1], ValueError)
        assert results[2] is None

    @pytest.mark.asyncio
    async def test_invalid_size(self):
        async def execute(bucket):
            return None

        with pytest.raises(ValueError):
            await collect(chunk(0, aiter_of([1]), execute))


class TestReduce:
    def test_sum(self):
        assert reduce([1, 2, 3, 4], lambda acc, i, item: acc + item, 0) == 10

    def test_index_passed(self):
        assert reduce("abc", lambda acc, i, item: acc + [(i, item)], []) == [
            (0, "a"),
            (1, "b"),
            (2, "c"),
        ]

    def test_empty_returns_initial(self):
        sentinel = object()
        assert reduce([], lambda acc, i, item: None, sentinel) is sentinel
