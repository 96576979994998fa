"""Adaptive transaction-size controller.

Recommends how many work units a batch consumer should handle per
transaction, growing the size while transactions finish under the duration
goal and shrinking it (sharply for large overshoots) when they run long.

Typical loop:
    calculator = TransactionSizeCalculator(TransactionSizeSettings(...))
    while work_remaining():
        batch = take(calculator.transaction_size)
        start = time.monotonic()
        commit(batch)
        calculator.record_last_transaction_duration(time.monotonic() - start)
        calculator.pause()
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta

from durable_workqueue.core.models import TransactionSizeSettings
from durable_workqueue.core.utils import to_seconds

logger = logging.getLogger(__name__)


class TransactionSizeCalculator:
    """Feedback controller producing a recommended batch size.

    Thread-safe: all state changes happen under an internal lock.
    """

    def __init__(self, settings: TransactionSizeSettings | None = None) -> None:
        self._settings = settings or TransactionSizeSettings()
        self._lock = threading.Lock()
        self._transaction_size = self._settings.min_transactions
        self._last_duration = self._settings.duration_goal_seconds
        self.reset()

    @property
    def settings(self) -> TransactionSizeSettings:
        return self._settings

    @property
    def transaction_size(self) -> int:
        """Current recommended number of work units per transaction."""
        with self._lock:
            return self._transaction_size

    @property
    def last_duration(self) -> float:
        """Duration in seconds of the last recorded transaction."""
        with self._lock:
            return self._last_duration

    def reset(self) -> None:
        """Return to the minimum size with the goal as the duration baseline."""
        with self._lock:
            self._transaction_size = self._settings.min_transactions
            self._last_duration = self._settings.duration_goal_seconds

    def record_last_transaction_duration(self, duration: float | timedelta) -> int:
        """Feed back the duration of the last transaction and re-tune the size.

        Args:
            duration: Wall-clock duration of the transaction, in seconds or
                as a timedelta.

        Returns:
            The new recommended transaction size.
        """
        seconds = to_seconds(duration)
        s = self._settings
        goal = s.duration_goal_seconds
        difference = abs(seconds - goal)
        close_threshold = goal * s.close_threshold_ratio

        with self._lock:
            self._last_duration = seconds
            size = self._transaction_size

            if seconds < goal:
                if difference > close_threshold:
                    new_size = int(size + size * 0.1) + 1
                else:
                    new_size = size + 1
            elif seconds > goal:
                if difference > s.reset_threshold_multiple * goal:
                    new_size = s.min_transactions
                elif difference > s.halve_threshold_multiple * goal:
                    new_size = size // 2
                elif difference > close_threshold:
                    new_size = int(size - size * 0.1) - 1
                else:
                    new_size = size - 1
            else:
                new_size = size

            new_size = max(s.min_transactions, min(s.max_transactions, new_size))
            self._transaction_size = new_size

        if new_size != size:
            logger.debug(
                "transaction size %d -> %d (last duration %.3fs, goal %.3fs)",
                size,
                new_size,
                seconds,
                goal,
            )
        return new_size

    def pause_duration(self) -> float:
        """Seconds pause() would sleep: min(last duration, 2 x goal)."""
        with self._lock:
            return min(self._last_duration, self._settings.duration_goal_seconds * 2)

    def pause(self, stop_event: threading.Event | None = None) -> None:
        """Back off after a transaction to avoid hammering a struggling backend.

        Args:
            stop_event: If given, the pause ends early once the event is set.
        """
        duration = self.pause_duration()
        if duration <= 0:
            return
        if stop_event is not None:
            stop_event.wait(timeout=duration)
        else:
            time.sleep(duration)
