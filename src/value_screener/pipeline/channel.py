"""
Bounded, closable FIFO queue for handing work between threads
"""

import threading
from collections import deque
from typing import Deque, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class QueueClosedError(Exception):
    """Raised by ``put`` on a closed queue, and by ``get`` once a closed queue is drained"""


class ClosableQueue(Generic[T]):
    """
    Thread-safe bounded FIFO with an explicit closed state

    - ``put`` blocks while the queue is full and raises QueueClosedError if
      the queue is (or becomes) closed.
    - ``get`` blocks while the queue is empty and open; after ``close`` it
      keeps returning queued items and raises QueueClosedError once drained.
    - Iterating yields items until the queue is closed and drained.
    """

    def __init__(self, maxsize: int = 100):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        self._items: Deque[T] = deque()
        self._closed = False
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)

    def put(self, item: T, timeout: Optional[float] = None) -> bool:
        """
        Add an item, blocking while the queue is full

        Args:
            item: Value to enqueue
            timeout: Maximum seconds to wait for room; None waits forever

        Returns:
            True when enqueued, False when the timeout expired first

        Raises:
            QueueClosedError: The queue is closed
        """
        with self._not_full:
            if self._closed:
                raise QueueClosedError("put() on a closed queue")
            if not self._not_full.wait_for(
                lambda: self._closed or len(self._items) < self.maxsize, timeout
            ):
                return False
            if self._closed:
                raise QueueClosedError("put() on a closed queue")
            self._items.append(item)
            self._not_empty.notify()
            return True

    def get(self) -> T:
        """
        Remove and return the oldest item, blocking while the queue is empty and open

        Raises:
            QueueClosedError: The queue is closed and has no items left
        """
        with self._not_empty:
            self._not_empty.wait_for(lambda: self._items or self._closed)
            if not self._items:
                raise QueueClosedError("queue closed and drained")
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def close(self) -> None:
        """Reject further puts and wake every waiting thread. Idempotent."""
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def qsize(self) -> int:
        with self._lock:
            return len(self._items)

    def __len__(self) -> int:
        return self.qsize()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except QueueClosedError:
                return
