"""
Rate pacing for replay.

A Ticker emits ticks at a fixed interval. Waiting for a tick is a race
between the tick deadline and a cancellation event, so a cancelled session
wakes immediately instead of sleeping out the interval.

Ticks that are missed while the caller is busy are dropped, not queued: a slow
consumer never gets a burst of catch-up ticks.
"""

import threading
import time
from collections.abc import Callable


class Ticker:
    """
    Periodic tick source.

    The first tick is due one interval after the ticker is created.

    Usage:
        ticker = Ticker(rate=10)
        while ticker.wait(cancel):
            ...  # at most 10 iterations per second

    Attributes:
        interval: Seconds between ticks
    """

    def __init__(self, rate: int, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Create a ticker.

        Args:
            rate: Ticks per second (must be positive)
            clock: Monotonic clock, in seconds
        """
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        self.interval = 1.0 / rate
        self._clock = clock
        self._next = clock() + self.interval

    def wait(self, cancel: threading.Event) -> bool:
        """
        Block until the next tick or until cancel is set.

        Returns:
            True when the tick arrived, False when cancelled first
        """
        delay = self._next - self._clock()
        if delay > 0:
            if cancel.wait(delay):
                return False
        elif cancel.is_set():
            return False

        now = self._clock()
        self._next += self.interval
        if self._next <= now:
            # Drop missed ticks.
            self._next = now + self.interval
        return True
