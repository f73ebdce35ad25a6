"""
Publication primitives used by the wallet session.

  - :class:`StateFlow`       : latest-value holder; equal values are
    conflated, subscribers are called on every change
  - :class:`DropOldestChannel`: bounded asyncio queue whose producer never
    blocks; when full the oldest item is evicted

Both are bound to the event loop that owns the session and must be
mutated from that loop only.  Other threads hand items over with
``loop.call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import AsyncIterator, Callable, Generic, TypeVar

logger = logging.getLogger("monerokit_streams")

T = TypeVar("T")


class StateFlow(Generic[T]):
    """Holds the current value and notifies subscribers when it changes."""

    def __init__(self, initial: T):
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def emit(self, value: T) -> bool:
        """Publish *value*.  Returns False if it equals the current value."""
        if value == self._value:
            return False
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("StateFlow subscriber failed")
        return True

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    async def watch(self) -> AsyncIterator[T]:
        """Yield the current value, then every later change."""
        queue: asyncio.Queue[T] = asyncio.Queue()
        queue.put_nowait(self._value)
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()


class DropOldestChannel(Generic[T]):
    """Bounded FIFO whose sender never blocks."""

    def __init__(self, capacity: int = 1):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._items: deque[T] = deque()
        self._not_empty = asyncio.Event()
        self.dropped = 0

    def send_nowait(self, item: T) -> None:
        if len(self._items) >= self.capacity:
            self._items.popleft()
            self.dropped += 1
        self._items.append(item)
        self._not_empty.set()

    async def receive(self) -> T:
        while not self._items:
            self._not_empty.clear()
            await self._not_empty.wait()
        item = self._items.popleft()
        if not self._items:
            self._not_empty.clear()
        return item

    def receive_nowait(self) -> T | None:
        if not self._items:
            return None
        item = self._items.popleft()
        if not self._items:
            self._not_empty.clear()
        return item

    def clear(self) -> None:
        self._items.clear()
        self._not_empty.clear()

    def __len__(self) -> int:
        return len(self._items)
