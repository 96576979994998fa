"""Time-windowed statistics used by the queue processor's debug output."""

from __future__ import annotations

import threading
import time
from collections import deque


class MovingAverage:
    """Average of the samples recorded within a trailing time window."""

    def __init__(self, window_seconds: float) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.window_seconds = window_seconds
        self._samples: deque[tuple[float, float]] = deque()
        self._total = 0.0
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._samples and self._samples[0][0] < cutoff:
            _, value = self._samples.popleft()
            self._total -= value

    def update(self, value: float) -> None:
        now = time.monotonic()
        with self._lock:
            self._prune(now)
            self._samples.append((now, value))
            self._total += value

    @property
    def average(self) -> float:
        """Mean of the samples in the window (0.0 when there are none)."""
        with self._lock:
            self._prune(time.monotonic())
            if not self._samples:
                return 0.0
            return self._total / len(self._samples)

    @property
    def count(self) -> int:
        with self._lock:
            self._prune(time.monotonic())
            return len(self._samples)


class EventRateMeter:
    """Events per second over a trailing time window.

    Until a full window has elapsed the rate is computed over the time since
    the meter was created, so early readings are not diluted.
    """

    def __init__(self, window_seconds: float) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.window_seconds = window_seconds
        self._created = time.monotonic()
        self._events: deque[tuple[float, int]] = deque()
        self._count = 0
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._events and self._events[0][0] < cutoff:
            _, n = self._events.popleft()
            self._count -= n

    def mark_events(self, n: int = 1) -> None:
        now = time.monotonic()
        with self._lock:
            self._prune(now)
            self._events.append((now, n))
            self._count += n

    def read_event_rate(self) -> float:
        """Events per second within the window."""
        now = time.monotonic()
        with self._lock:
            self._prune(now)
            elapsed = min(self.window_seconds, now - self._created)
            if elapsed <= 0:
                return 0.0
            return self._count / elapsed
