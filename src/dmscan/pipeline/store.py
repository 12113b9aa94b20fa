"""
Pre-sized result store.

Holds one WorkItem per enumerated file for the lifetime of a run. Workers
never see the store itself: they get the paths of their own range and hand
back a message list that the coordinator writes into that range.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from dmscan.errors import AllocationError

from .partition import IndexRange


@dataclass
class WorkItem:
    """
    One slot of the result store.

    Attributes:
        index: Position fixed at enumeration time
        path: Image path, never changed after creation
        message: Decoded payload, "" until written (and on failure)
    """

    index: int
    path: str
    message: str = ""


class ResultStore:
    """
    Fixed-size, index-addressable array of WorkItem slots.

    Size is set by create() and never changes. Use as a context manager to
    guarantee destroy() runs on every exit path:

        >>> with ResultStore.create(listing.paths) as store:
        ...     store.fill(IndexRange(0, len(store)), messages)
    """

    def __init__(self, items: list[WorkItem]) -> None:
        self._items: list[WorkItem] | None = items

    @classmethod
    def create(cls, paths: Sequence[str]) -> "ResultStore":
        """Allocate one empty slot per path, indexed by position."""
        try:
            items = [WorkItem(index=i, path=path) for i, path in enumerate(paths)]
        except MemoryError as e:
            raise AllocationError(f"Cannot allocate result store for {len(paths)} files") from e
        return cls(items)

    def _slots(self) -> list[WorkItem]:
        if self._items is None:
            raise RuntimeError("ResultStore used after destroy()")
        return self._items

    def __len__(self) -> int:
        return len(self._slots())

    def __enter__(self) -> "ResultStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    @property
    def destroyed(self) -> bool:
        return self._items is None

    def get(self, index: int) -> WorkItem:
        return self._slots()[index]

    def set(self, index: int, message: str) -> None:
        self._slots()[index].message = message

    def paths_for(self, index_range: IndexRange) -> tuple[str, ...]:
        """Return the paths of one worker's range, in index order."""
        slots = self._slots()
        return tuple(slots[i].path for i in index_range)

    def fill(self, index_range: IndexRange, messages: Sequence[str]) -> None:
        """Write a worker's completed range back into the store."""
        if len(messages) != len(index_range):
            raise ValueError(
                f"Range [{index_range.start}, {index_range.end}) expects "
                f"{len(index_range)} messages, got {len(messages)}"
            )
        slots = self._slots()
        for i, message in zip(index_range, messages):
            slots[i].message = message

    def items(self) -> Iterator[WorkItem]:
        """Iterate slots in ascending index order."""
        return iter(self._slots())

    def destroy(self) -> None:
        """Release all slots. Safe to call more than once."""
        if self._items is not None:
            self._items.clear()
            self._items = None
