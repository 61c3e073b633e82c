from __future__ import annotations

from collections.abc import Iterable, Iterator
from itertools import islice
from typing import TypeVar

T = TypeVar("T")

BULK_IMPORT_SIZE = 100


def iter_batches(items: Iterable[T], size: int = BULK_IMPORT_SIZE) -> Iterator[list[T]]:
    """Yield lists of at most ``size`` items, pulling items only as needed.

    The next batch is not started until the consumer asks for it, so a slow
    consumer holds the producer back.
    """
    if size < 1:
        raise ValueError("batch size must be at least 1")
    iterator = iter(items)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


__all__ = ["BULK_IMPORT_SIZE", "iter_batches"]
