"""Fixed-size wrap-around history buffer.

The sample loop pushes into it at the poll rate and the render loop reads the
latest entry (or the whole window, for trend lines) at the refresh rate.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

T = TypeVar("T")


class HistoryBuffer(Generic[T]):
    """Holds at most *capacity* items; adding to a full buffer overwrites the oldest."""

    def __init__(self, capacity: int, default: T | None = None) -> None:
        if capacity < 1:
            raise ValueError(f"history capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._count = 0
        self._head = 0
        self._data: list[T | None] = [default] * capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def count(self) -> int:
        """Number of items added so far, never more than ``capacity``."""
        return self._count

    def __len__(self) -> int:
        return self._count

    def add(self, item: T) -> None:
        self._data[self._head] = item
        self._head = (self._head + 1) % self._capacity
        self._count = min(self._count + 1, self._capacity)

    def peek(self, index: int) -> T | None:
        """Return the slot at *index*, wrapping indices past the capacity.

        Slots that were never written hold the buffer's default value.
        """
        if index < 0:
            raise IndexError(f"history index must be non-negative, got {index}")
        return self._data[index % self._capacity]

    def last(self) -> T | None:
        """Return the most recently added item, or None if nothing was added."""
        if self._count == 0:
            return None
        return self._data[(self._head - 1) % self._capacity]

    def __iter__(self) -> Iterator[T]:
        """Iterate stored items from oldest to newest."""
        start = (self._head - self._count) % self._capacity
        for offset in range(self._count):
            yield self._data[(start + offset) % self._capacity]  # type: ignore[misc]
