"""Single-consumer FIFO that exposes one current item at a time.

The queue never calls back into its owner. Instead ``enqueue`` and ``done``
report whether a new item became current, and the owner decides whether to
start processing it.
"""

from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class SequencerQueue(Generic[T]):
    """Strict arrival-order queue with an explicit current slot."""

    def __init__(self) -> None:
        self._items: deque[T] = deque()
        self._current: T | None = None
        self._has_current = False

    @property
    def current(self) -> T | None:
        """The item being processed, or None when idle."""
        return self._current

    @property
    def pending(self) -> int:
        """Number of items waiting behind the current one."""
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items) + (1 if self._has_current else 0)

    def __bool__(self) -> bool:
        return self._has_current or bool(self._items)

    def enqueue(self, item: T) -> bool:
        """Append an item.

        Returns:
            True when the queue was idle and ``item`` became current.
        """
        self._items.append(item)
        return self._advance()

    def done(self) -> bool:
        """Release the current item and promote the next pending one.

        Returns:
            True when another item became current.
        """
        self._current = None
        self._has_current = False
        return self._advance()

    def clear(self) -> None:
        """Drop every item, including the current one. Nothing is reported."""
        self._items.clear()
        self._current = None
        self._has_current = False

    def _advance(self) -> bool:
        if self._has_current or not self._items:
            return False
        self._current = self._items.popleft()
        self._has_current = True
        return True
