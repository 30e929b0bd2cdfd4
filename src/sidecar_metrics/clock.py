"""
Clock Abstraction

Provides a pluggable millisecond time source for latency measurement.
Production code uses the monotonic clock; tests and simulations drive a
manual clock so elapsed times are exact.
"""

import threading
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """
    Abstract base class for clocks.

    Values are only meaningful relative to each other; subtract two readings
    to obtain an elapsed time.
    """

    @abstractmethod
    def now_ms(self) -> float:
        """Get current reading in milliseconds."""
        pass

    def elapsed_ms(self, start_ms: float) -> float:
        """Calculate milliseconds elapsed since ``start_ms``.

        Args:
            start_ms: Reference reading from an earlier now_ms() call

        Returns:
            Elapsed time in milliseconds (never negative)
        """
        return max(0.0, self.now_ms() - start_ms)


class MonotonicClock(Clock):
    """
    Monotonic clock backed by time.monotonic().

    Unaffected by wall-clock adjustments, so elapsed times cannot go negative.
    """

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock(Clock):
    """
    Manually driven clock for tests and simulated runs.

    Examples:
        >>> clock = ManualClock(1000)
        >>> start = clock.now_ms()
        >>> clock.advance(150)
        >>> clock.elapsed_ms(start)
        150.0
    """

    def __init__(self, start_ms: float = 0.0):
        """Initialize manual clock.

        Args:
            start_ms: Initial reading in milliseconds
        """
        self._now = float(start_ms)
        self._lock = threading.Lock()

    def now_ms(self) -> float:
        with self._lock:
            return self._now

    def advance(self, ms: float) -> None:
        """Move the clock forward.

        Args:
            ms: Milliseconds to advance (must be non-negative)

        Raises:
            ValueError: If ms is negative
        """
        if ms < 0:
            raise ValueError("Cannot move a clock backwards")
        with self._lock:
            self._now += ms

    def set(self, ms: float) -> None:
        """Set the clock to an absolute reading (not earlier than the current one)."""
        with self._lock:
            if ms < self._now:
                raise ValueError("Cannot move a clock backwards")
            self._now = float(ms)


__all__ = ["Clock", "MonotonicClock", "ManualClock"]
