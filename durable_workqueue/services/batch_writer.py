"""Batch consumer sized by the adaptive transaction-size controller.

Items are buffered until the buffer reaches the calculator's current
recommendation, then committed in batches no larger than that. Each commit
is timed and the duration fed back, so batch sizes settle where one commit
takes about the configured duration goal.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from durable_workqueue.core.transaction_size import TransactionSizeCalculator

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BatchWriter(Generic[T]):
    """Buffers items and commits them in adaptively sized batches.

    No single commit is larger than the calculator's current transaction
    size. A failing commit propagates its exception and leaves the batch
    buffered, so the next add() or flush() retries it. With
    ``pause_between_batches`` the writer calls ``calculator.pause()`` after
    each successful commit, backing off in proportion to how slow the
    backend has been.
    """

    def __init__(
        self,
        commit: Callable[[Sequence[T]], Any],
        calculator: TransactionSizeCalculator | None = None,
        pause_between_batches: bool = False,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._commit = commit
        self._calculator = calculator or TransactionSizeCalculator()
        self._pause_between_batches = pause_between_batches
        self._stop_event = stop_event
        self._buffer: list[T] = []
        self._lock = threading.Lock()

        self._batches_committed = 0
        self._items_committed = 0
        self._last_commit_seconds: float | None = None

    @property
    def calculator(self) -> TransactionSizeCalculator:
        return self._calculator

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._buffer)

    def add(self, item: T) -> int:
        """Buffer an item, committing one batch once the buffer is full.

        Returns:
            Number of items committed by this call (0 if only buffered).
        """
        with self._lock:
            self._buffer.append(item)
            if len(self._buffer) < self._calculator.transaction_size:
                return 0
            committed = self._commit_batch()
        self._maybe_pause()
        return committed

    def flush(self) -> int:
        """Commit everything buffered, one batch at a time.

        Returns:
            The number of items committed.
        """
        total = 0
        while True:
            with self._lock:
                committed = self._commit_batch()
            if not committed:
                return total
            total += committed
            if self.pending:
                self._maybe_pause()

    def close(self) -> None:
        self.flush()

    def _maybe_pause(self) -> None:
        if self._pause_between_batches:
            self._calculator.pause(self._stop_event)

    def _commit_batch(self) -> int:
        if not self._buffer:
            return 0
        batch = self._buffer[: self._calculator.transaction_size]

        start = time.monotonic()
        self._commit(batch)
        elapsed = time.monotonic() - start

        del self._buffer[: len(batch)]
        self._batches_committed += 1
        self._items_committed += len(batch)
        self._last_commit_seconds = elapsed
        new_size = self._calculator.record_last_transaction_duration(elapsed)
        logger.debug(
            "Committed batch of %d in %.1fms, next size %d",
            len(batch),
            elapsed * 1000,
            new_size,
        )
        return len(batch)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "batches_committed": self._batches_committed,
                "items_committed": self._items_committed,
                "pending": len(self._buffer),
                "transaction_size": self._calculator.transaction_size,
                "last_commit_seconds": self._last_commit_seconds,
            }

    def __enter__(self) -> BatchWriter[T]:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
