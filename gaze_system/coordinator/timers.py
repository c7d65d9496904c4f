"""
Timer Scheduler
Cooperative one-shot timers polled from the frame thread
"""

import heapq
import itertools
import logging
from typing import Callable, Dict, List, Optional, Tuple

from .clock import MonotonicClock

logger = logging.getLogger(__name__)


class TimerScheduler:
    """
    One-shot timers that fire only from poll(), on the polling thread.

    Cancellation is total: a cancelled handle is never fired, even if its
    deadline has already passed when poll() runs.
    """

    def __init__(self, clock: Optional[MonotonicClock] = None):
        self.clock = clock or MonotonicClock()
        self._ids = itertools.count(1)
        self._heap: List[Tuple[float, int]] = []
        self._callbacks: Dict[int, Callable[[], None]] = {}

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> int:
        """
        Register a callback to run once `delay_ms` from now

        Args:
            delay_ms: Delay in milliseconds
            callback: Zero-argument callable

        Returns:
            Handle for cancel()
        """
        handle = next(self._ids)
        deadline = self.clock.now_ms() + max(0.0, float(delay_ms))
        heapq.heappush(self._heap, (deadline, handle))
        self._callbacks[handle] = callback
        logger.debug(f"Timer {handle} scheduled in {delay_ms} ms")
        return handle

    def cancel(self, handle: int) -> bool:
        """Cancel a pending timer; returns False if it already fired or was cancelled"""
        cancelled = self._callbacks.pop(handle, None) is not None
        if cancelled:
            logger.debug(f"Timer {handle} cancelled")
        return cancelled

    def cancel_all(self):
        self._callbacks.clear()
        self._heap.clear()

    def is_pending(self, handle: int) -> bool:
        return handle in self._callbacks

    @property
    def pending(self) -> int:
        return len(self._callbacks)

    def poll(self) -> int:
        """
        Run every callback whose deadline has passed, earliest first

        Returns:
            Number of callbacks fired
        """
        now = self.clock.now_ms()
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, handle = heapq.heappop(self._heap)
            callback = self._callbacks.pop(handle, None)
            if callback is None:
                continue
            callback()
            fired += 1
        return fired

    def __repr__(self):
        return f"<TimerScheduler(pending={self.pending})>"
