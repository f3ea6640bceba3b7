from typing import Callable, Iterable, TypeVar

In = TypeVar("In")
Out = TypeVar("Out")

# Receives the accumulator, the item's index and the item; returns the new accumulator.
Reducer = Callable[[Out, int, In], Out]


def reduce(items: Iterable[In], reducer: Reducer[Out, In], initial: Out) -> Out:
    """Fold ``items`` left to right, starting from ``initial``."""
    accum = initial
    for index, item in enumerate(items):
        accum = reducer(accum, index, item)
    return accum
