"""
Monotonic Clock
Millisecond time reference shared by the frame loop and calibration timers
"""

import threading
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class MonotonicClock:
    """
    Thread-safe millisecond clock

    Ensures every reader sees:
    - Monotonic timestamps (never decreasing, even if the source stalls)
    - A single time reference for timers and frame timestamps
    """

    def __init__(self, source: Optional[Callable[[], float]] = None):
        """
        Initialize clock

        Args:
            source: Seconds source, defaults to time.monotonic
        """
        self._source = source or time.monotonic
        self._lock = threading.Lock()
        self._last_ms: Optional[float] = None
        self._call_count = 0

        logger.debug("Monotonic clock initialized")

    def now_ms(self) -> float:
        """
        Get current time in milliseconds

        Returns:
            float: Milliseconds from an arbitrary fixed origin
        """
        with self._lock:
            current = self._source() * 1000.0

            if self._last_ms is not None and current < self._last_ms:
                current = self._last_ms
                logger.debug("Clamped timestamp to maintain monotonic sequence")

            self._last_ms = current
            self._call_count += 1
            return current

    def reset(self):
        """Reset clock state (useful for testing)"""
        with self._lock:
            self._last_ms = None
            self._call_count = 0

    def get_stats(self) -> dict:
        with self._lock:
            return {
                'total_calls': self._call_count,
                'last_ms': self._last_ms,
            }

    def __repr__(self):
        return f"<MonotonicClock(calls={self._call_count})>"


class ManualClock(MonotonicClock):
    """Clock advanced by hand; drives timers deterministically in tests"""

    def __init__(self, start_ms: float = 0.0):
        self._manual_ms = float(start_ms)
        super().__init__(source=lambda: self._manual_ms / 1000.0)

    def advance(self, ms: float):
        if ms < 0:
            raise ValueError("Cannot move a monotonic clock backwards")
        self._manual_ms += ms

    def set(self, ms: float):
        if ms < self._manual_ms:
            raise ValueError("Cannot move a monotonic clock backwards")
        self._manual_ms = float(ms)
