"""
pipekit - Batch Helpers
========================

Small asyncio building blocks for processing a stream of items:

    run(workers, items, for_each)   fan out to a fixed number of workers
    chunk(size, items, execute)     group items into fixed-size buckets
    reduce(items, reducer, initial) fold a sequence with access to the index

``run`` and ``chunk`` are async generators that yield one result per unit
of work: ``None`` on success, or the ``Exception`` the callback raised.
Errors are reported, not raised, so one failing item does not stop the rest.
"""

from pipekit.batch.batch import ForEach, run
from pipekit.batch.chunk import Exec, chunk
from pipekit.batch.reduce import Reducer, reduce

__all__ = ["ForEach", "run", "Exec", "chunk", "Reducer", "reduce"]
