"""
Static work partitioning.

Splits the store's index space into contiguous, disjoint ranges, one per
worker. Disjointness is what lets workers run without any locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class IndexRange:
    """Half-open index range [start, end) owned by one worker."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid index range [{self.start}, {self.end})")

    def __len__(self) -> int:
        return self.end - self.start

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end))

    @property
    def empty(self) -> bool:
        return self.start == self.end


def partition(numfiles: int, numworkers: int) -> list[IndexRange]:
    """
    Split [0, numfiles) into `numworkers` contiguous ranges.

    The first `numfiles % numworkers` workers get one extra item, so range
    lengths differ by at most one. When there are more workers than files
    the trailing ranges are empty.

    Parameters:
        numfiles: Number of items in the store
        numworkers: Number of workers, at least 1

    Returns:
        List of `numworkers` IndexRange objects in worker order

    Raises:
        ValueError: If numworkers < 1 or numfiles < 0

    Example:
        >>> partition(7, 3)
        [IndexRange(start=0, end=3), IndexRange(start=3, end=5), IndexRange(start=5, end=7)]
    """
    if numworkers < 1:
        raise ValueError(f"numworkers must be at least 1, got {numworkers}")
    if numfiles < 0:
        raise ValueError(f"numfiles must be non-negative, got {numfiles}")

    base, remainder = divmod(numfiles, numworkers)
    ranges: list[IndexRange] = []
    start = 0
    for p in range(numworkers):
        size = base + 1 if p < remainder else base
        ranges.append(IndexRange(start, start + size))
        start += size
    return ranges
