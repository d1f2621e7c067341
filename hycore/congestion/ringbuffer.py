"""A growable first-in first-out queue with indexed access."""

from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """FIFO queue supporting push at the back, pop at the front and indexing.

    The buffer grows as needed; capacity must be non-negative.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        self._items: deque[T] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> T:
        if not -len(self._items) <= index < len(self._items):
            raise IndexError("ring buffer index out of range")
        return self._items[index]

    def empty(self) -> bool:
        """Return True if the buffer holds no elements."""
        return not self._items

    def push_back(self, item: T) -> None:
        """Append an element at the back."""
        self._items.append(item)

    def pop_front(self) -> T:
        """Remove and return the front element."""
        if not self._items:
            raise IndexError("pop from an empty ring buffer")
        return self._items.popleft()

    def front(self) -> T:
        """Return the front element without removing it."""
        if not self._items:
            raise IndexError("front of an empty ring buffer")
        return self._items[0]

    def back(self) -> T:
        """Return the back element without removing it."""
        if not self._items:
            raise IndexError("back of an empty ring buffer")
        return self._items[-1]

    def clear(self) -> None:
        """Remove all elements."""
        self._items.clear()