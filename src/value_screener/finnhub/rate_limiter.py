"""
Rate limiting for Finnhub API requests shared by all fetch workers
"""

import threading
import time
from typing import Callable, Optional

from src.utils.core.logger import get_logger

logger = get_logger(__name__, utility="value_screener")


class RateLimiter:
    """
    Minimum-interval gate shared across threads

    Admits at most one acquisition per ``min_interval`` seconds across all
    callers. Each caller reserves the next free slot while holding the lock
    and then waits for it outside the lock, so concurrent callers are
    admitted one per interval in arrival order. The first acquisition is
    immediate.

    Attributes:
        min_interval: Seconds between two admitted calls
        granted_count: Number of acquisitions granted so far
    """

    def __init__(self, min_interval: float = 3.0, clock: Callable[[], float] = time.monotonic):
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")
        self.min_interval = float(min_interval)
        self.granted_count = 0
        self._clock = clock
        self._lock = threading.Lock()
        self._next_slot: Optional[float] = None

    def _reserve_slot(self) -> float:
        with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.min_interval
            return slot

    def acquire(self, cancel_event: Optional[threading.Event] = None) -> bool:
        """
        Block until the caller may make one request

        Args:
            cancel_event: Shared cancellation flag; setting it wakes waiting callers

        Returns:
            True when the call was granted, False when cancelled while waiting
        """
        cancel_event = cancel_event or threading.Event()
        if cancel_event.is_set():
            return False

        slot = self._reserve_slot()
        delay = slot - self._clock()
        if delay > 0:
            logger.debug(f"Rate limit: waiting {delay:.2f}s for next slot")
            # Event.wait returns True only when the event was set
            if cancel_event.wait(delay):
                logger.debug("Rate limit wait cancelled")
                return False

        with self._lock:
            self.granted_count += 1
        return True

    def get_time_until_next_slot(self) -> float:
        """Seconds until a new caller could be admitted"""
        with self._lock:
            if self._next_slot is None:
                return 0.0
            return max(0.0, self._next_slot - self._clock())

    def reset(self) -> None:
        """Forget reserved slots; the next caller is admitted immediately"""
        with self._lock:
            self._next_slot = None
        logger.info("Rate limiter manually reset")

    def __str__(self) -> str:
        return (
            f"RateLimiter(interval: {self.min_interval:.2f}s, granted: {self.granted_count}, "
            f"next_slot_in: {self.get_time_until_next_slot():.2f}s)"
        )


class NoOpRateLimiter(RateLimiter):
    """
    Limiter that admits every caller immediately. Used when rate limiting is disabled.
    Cancellation is still honoured.
    """

    def __init__(self):
        super().__init__(min_interval=0.0)

    def acquire(self, cancel_event: Optional[threading.Event] = None) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return False
        with self._lock:
            self.granted_count += 1
        return True

    def get_time_until_next_slot(self) -> float:
        return 0.0


def get_rate_limiter(min_interval: float, disabled: bool = False) -> RateLimiter:
    """
    Factory to return the appropriate rate limiter depending on configuration.
    """
    if disabled:
        logger.warning("Rate limiting disabled; requests are not throttled")
        return NoOpRateLimiter()
    return RateLimiter(min_interval=min_interval)
