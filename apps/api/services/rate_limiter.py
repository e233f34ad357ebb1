"""
Client-side pacing for sequential archive requests.
"""
import threading
import time
from typing import Callable, Optional


class FixedIntervalLimiter:
    """
    Enforce a minimum spacing between successive ``wait()`` calls.

    The first call never blocks. ``clock`` and ``sleep`` are injectable so
    batch loops can be tested without real delays.
    """

    def __init__(
        self,
        interval_s: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        self.interval_s = interval_s
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until the interval has elapsed; returns seconds slept."""
        with self._lock:
            slept = 0.0
            now = self._clock()
            if self._last is not None:
                remaining = self.interval_s - (now - self._last)
                if remaining > 0:
                    self._sleep(remaining)
                    slept = remaining
                    now = self._clock()
            self._last = now
            return slept

    def reset(self) -> None:
        with self._lock:
            self._last = None


class NoopLimiter(FixedIntervalLimiter):
    def __init__(self):
        super().__init__(0.0)
