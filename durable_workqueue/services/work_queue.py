"""Durable background work queue processor.

Producers submit work items; each item is wrapped in an envelope, persisted
to the backing store and handed to a single background worker thread, which
feeds items to the caller's ItemProcessor in strict FIFO order.

Lifecycle, following the same daemon-thread pattern as the other services:
- __init__: binds store/settings/processor and starts the worker thread
- submit(): persist + wake the worker, with bounded backpressure
- close(): sets the shutdown flag, drains best-effort until the deadline,
  logs what is left (left items stay in the store for the next instance)
- _background_worker(): process head item, then park until new work, a
  retry wakeup, or shutdown

Worker loop for the head item:
    peek -> decode (corrupt: discard) -> age check (stale: discard)
         -> process():  SUCCESS  remove, continue
                        FAILED   remove, log error
                        RETRY    keep at head, park for retry_interval
                        other    remove, log warning
An exception raised by process() removes the item so one bad item can
never wedge the queue.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Any, Generic, TypeVar

from durable_workqueue.core.envelope import EnvelopeCodec, ItemEnvelope, LoopingIdGenerator
from durable_workqueue.core.errors import (
    EnvelopeDecodeError,
    QueueClosedError,
    QueueSaturatedError,
)
from durable_workqueue.core.models import ProcessResult, WorkQueueSettings
from durable_workqueue.core.stats import EventRateMeter, MovingAverage
from durable_workqueue.core.tracing import work_item_context
from durable_workqueue.core.utils import format_duration
from durable_workqueue.ports.backing_store import BackingStoreProtocol
from durable_workqueue.ports.item_processor import ItemProcessor

W = TypeVar("W")

SUBMIT_QUEUE_FULL_RETRY_INTERVAL = 0.1
WORKER_ERROR_BACKOFF_SECONDS = 1.0
STATS_WINDOW_SECONDS = 3600.0
MAX_RECORD_LOG_LENGTH = 200

logger = logging.getLogger(__name__)


class WorkQueueProcessor(Generic[W]):
    """Single-consumer, at-least-once work queue over a durable backing store.

    Thread-safe for producers: submit() may be called from any number of
    threads. Exactly one worker thread reads and removes from the store.

    Example:
        store = SQLiteBackingStore(Path("/var/lib/app/audit.sqlite3"))
        queue = WorkQueueProcessor(store, WorkQueueSettings(), AuditSender(), AuditEvent, "audit")
        queue.submit(AuditEvent(...))
        ...
        queue.close()
    """

    def __init__(
        self,
        store: BackingStoreProtocol,
        settings: WorkQueueSettings,
        item_processor: ItemProcessor[W],
        item_type: Any = Any,
        name: str = "work-queue",
    ) -> None:
        """Initialize the processor and start its worker thread.

        Args:
            store: Ordered backing store holding serialized envelopes.
            settings: Queue tunables.
            item_processor: Callback that handles dequeued items.
            item_type: Declared payload type for (de)serialization.
            name: Logical name for the worker thread and log messages.
        """
        self._store = store
        self._settings = settings
        self._item_processor = item_processor
        self._name = name
        self._codec: EnvelopeCodec[W] = EnvelopeCodec(item_type)
        self._id_generator = LoopingIdGenerator()
        self._logger = logging.getLogger(f"{__name__}.{name}")

        # Threading primitives
        self._submit_lock = threading.Lock()
        self._condition = threading.Condition()
        self._shutdown_event = threading.Event()
        self._close_lock = threading.Lock()
        self._closed = False

        # Guarded by _condition
        self._work_pending = True
        self._eldest_item: datetime | None = None
        self._shutdown_deadline = 0.0

        # Worker-thread only
        self._retry_wakeup: float | None = None

        # Statistics
        self._stats_lock = threading.Lock()
        self._items_submitted = 0
        self._items_succeeded = 0
        self._items_failed = 0
        self._items_retried = 0
        self._items_discarded_stale = 0
        self._items_discarded_corrupt = 0
        self._items_errored = 0
        self._items_invalid_result = 0
        self._items_attempted = 0
        self._avg_lag = MovingAverage(STATS_WINDOW_SECONDS)
        self._success_rate = EventRateMeter(STATS_WINDOW_SECONDS)

        pending = store.size()
        if pending:
            self._logger.debug("opening with %d items in work queue", pending)
        self._logger.debug("initializing worker thread with settings %s", settings)

        self._worker_thread = threading.Thread(
            target=self._background_worker,
            name=f"{name}-worker",
            daemon=True,
        )
        self._worker_thread.start()

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def name(self) -> str:
        return self._name

    @property
    def settings(self) -> WorkQueueSettings:
        return self._settings

    @property
    def is_open(self) -> bool:
        return not self._shutdown_event.is_set()

    def queue_size(self) -> int:
        """Number of items waiting in the backing store."""
        return self._store.size()

    def eldest_item(self) -> datetime | None:
        """Submission time watermark of the outstanding backlog.

        Set on every successful submit and cleared when the worker goes idle
        on an empty queue.
        """
        with self._condition:
            return self._eldest_item

    def submit(self, item: W) -> None:
        """Persist a work item and wake the worker.

        Blocks while the queue is full, up to max_submit_wait_seconds.

        Args:
            item: The work item, an instance of the declared item type.

        Raises:
            QueueClosedError: If the processor is closed or closes while waiting.
            QueueSaturatedError: If the queue stays full past the wait time.
        """
        if self._shutdown_event.is_set():
            raise QueueClosedError(self._name)

        envelope = self._codec.wrap(item, str(self._id_generator.next()))
        serialized = self._codec.encode(envelope)

        with self._submit_lock:
            deadline = time.monotonic() + self._settings.max_submit_wait_seconds
            while not self._try_append(serialized):
                if self._shutdown_event.is_set():
                    raise QueueClosedError(self._name)
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise QueueSaturatedError(
                        self._name,
                        self._settings.max_submit_wait_seconds,
                        self._describe_item(item),
                    )
                # Woken early when the worker frees a slot
                with self._condition:
                    self._condition.wait(timeout=min(SUBMIT_QUEUE_FULL_RETRY_INTERVAL, remaining))

            with self._condition:
                self._eldest_item = envelope.submitted_at
                self._work_pending = True
                self._condition.notify_all()

        with self._stats_lock:
            self._items_submitted += 1

        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("item submitted: %s", self._make_debug_text(envelope, item))

    def close(self) -> None:
        """Stop the worker, draining the backlog for up to max_shutdown_wait_seconds.

        Never raises. Items that could not be processed in time remain in the
        backing store for the next processor opened on it. Idempotent.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        start = time.monotonic()
        max_wait = self._settings.max_shutdown_wait_seconds
        self._logger.debug(
            "attempting to flush queue prior to shutdown, items in queue=%d",
            self._safe_queue_size(),
        )

        with self._condition:
            self._shutdown_deadline = start + max_wait
            self._shutdown_event.set()
            self._condition.notify_all()

        if threading.current_thread() is self._worker_thread:
            # Called from inside an item processor; the worker drains on its
            # own once the callback returns
            self._logger.debug("close() called from worker thread, not waiting for drain")
        else:
            self._worker_thread.join(timeout=max_wait)
            if self._worker_thread.is_alive():
                self._logger.warning(
                    "worker thread did not stop within %s", format_duration(max_wait)
                )

        remaining = self._safe_queue_size()
        msg = "shutting down with %d items remaining in work queue (%s)"
        elapsed = format_duration(time.monotonic() - start)
        if remaining:
            self._logger.warning(msg, remaining, elapsed)
        else:
            self._logger.debug(msg, remaining, elapsed)

        with self._stats_lock:
            self._logger.info(
                "work queue stopped. Submitted: %d, Succeeded: %d, Failed: %d, "
                "Discarded: %d, Errors: %d",
                self._items_submitted,
                self._items_succeeded,
                self._items_failed,
                self._items_discarded_stale + self._items_discarded_corrupt,
                self._items_errored,
            )

    def get_stats(self) -> dict[str, Any]:
        """Get queue processor statistics.

        Returns:
            Dictionary with counters, backlog size and lag/rate figures.
        """
        with self._stats_lock:
            stats: dict[str, Any] = {
                "name": self._name,
                "items_submitted": self._items_submitted,
                "items_attempted": self._items_attempted,
                "items_succeeded": self._items_succeeded,
                "items_failed": self._items_failed,
                "items_retried": self._items_retried,
                "items_discarded_stale": self._items_discarded_stale,
                "items_discarded_corrupt": self._items_discarded_corrupt,
                "items_errored": self._items_errored,
                "items_invalid_result": self._items_invalid_result,
            }
        stats["queue_size"] = self._safe_queue_size()
        stats["eldest_item"] = self.eldest_item()
        stats["retry_pending"] = self._retry_wakeup is not None
        stats["worker_alive"] = self._worker_thread.is_alive()
        stats["avg_lag_seconds"] = self._avg_lag.average
        stats["success_rate_per_second"] = self._success_rate.read_event_rate()
        return stats

    def debug_info(self) -> dict[str, str]:
        """Human-readable summary of the processor's recent behavior."""
        stats = self.get_stats()
        return {
            "avgLagTime": format_duration(stats["avg_lag_seconds"]),
            "sendRate": f"{stats['success_rate_per_second']:.2f}/s",
            "queueProcessItems": str(stats["items_attempted"]),
            "queueSize": str(stats["queue_size"]),
        }

    def __enter__(self) -> WorkQueueProcessor[W]:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # =========================================================================
    # Background Worker
    # =========================================================================

    def _background_worker(self) -> None:
        """Process items until shutdown, then drain until the deadline."""
        self._logger.debug("worker thread started")

        while not self._shutdown_event.is_set():
            try:
                self._process_next_item()
                self._wait_for_work()
            except Exception:
                self._logger.error("unexpected error processing work item queue", exc_info=True)
                self._shutdown_event.wait(timeout=WORKER_ERROR_BACKOFF_SECONDS)

        self._logger.debug("worker thread beginning shutdown")
        try:
            self._drain_on_shutdown()
        except Exception:
            self._logger.error("unexpected error draining work item queue", exc_info=True)

        self._logger.debug("worker thread exiting")

    def _drain_on_shutdown(self) -> None:
        """Keep processing until empty, a retry is requested, or the deadline."""
        remaining = self._store.size()
        if not remaining:
            return
        self._logger.debug("processing remaining %d items", remaining)

        with self._condition:
            deadline = self._shutdown_deadline

        while (
            self._retry_wakeup is None
            and self._store.size() > 0
            and time.monotonic() < deadline
        ):
            self._process_next_item()

    def _wait_for_work(self) -> None:
        """Park until new work, the retry wakeup time, or shutdown."""
        with self._condition:
            if self._retry_wakeup is not None:
                while not self._shutdown_event.is_set():
                    remaining = self._retry_wakeup - time.monotonic()
                    if remaining <= 0:
                        break
                    self._condition.wait(timeout=remaining)
                # Cleared even when woken by shutdown, so the drain gets one
                # more attempt at the head item
                self._retry_wakeup = None
            elif (
                not self._work_pending
                and not self._shutdown_event.is_set()
                and self._store.size() == 0
            ):
                self._eldest_item = None
                self._condition.wait_for(
                    lambda: self._work_pending or self._shutdown_event.is_set()
                )

            self._work_pending = False

    def _process_next_item(self) -> None:
        """Attempt the head item once and apply the removal/retry policy."""
        raw = self._store.peek_head()
        if raw is None:
            return

        try:
            envelope = self._codec.decode(raw)
        except EnvelopeDecodeError as e:
            self._discard_corrupt(raw, e)
            return

        if envelope.age_seconds() > self._settings.retry_discard_age_seconds:
            self._remove_head()
            self._logger.warning(
                "discarding queued item due to age, item=%s", self._make_debug_text(envelope)
            )
            with self._stats_lock:
                self._items_discarded_stale += 1
            return

        try:
            item = self._codec.unwrap(envelope)
        except EnvelopeDecodeError as e:
            self._discard_corrupt(raw, e)
            return

        with self._stats_lock:
            self._items_attempted += 1

        with work_item_context(self._name, envelope.id) as ctx:
            try:
                result = self._item_processor.process(item)
            except Exception:
                self._remove_head()
                self._logger.error(
                    "unexpected error while processing work queue item after %.1fms, "
                    "discarding; item=%s",
                    ctx.elapsed_ms(),
                    self._make_debug_text(envelope, item),
                    exc_info=True,
                )
                with self._stats_lock:
                    self._items_errored += 1
                return

        if result is ProcessResult.SUCCESS:
            self._remove_head()
            self._record_success(envelope, item)
        elif result is ProcessResult.FAILED:
            self._remove_head()
            self._logger.error(
                "discarding item after process failure, item=%s",
                self._make_debug_text(envelope, item),
            )
            with self._stats_lock:
                self._items_failed += 1
        elif result is ProcessResult.RETRY:
            self._retry_wakeup = time.monotonic() + self._settings.retry_interval_seconds
            self._logger.debug(
                "will retry item after %s, item=%s",
                format_duration(self._settings.retry_interval_seconds),
                self._make_debug_text(envelope, item),
            )
            with self._stats_lock:
                self._items_retried += 1
        else:
            self._remove_head()
            self._logger.warning(
                "item processor returned %r, removing; item=%s",
                result,
                self._make_debug_text(envelope, item),
            )
            with self._stats_lock:
                self._items_invalid_result += 1

    def _discard_corrupt(self, raw: str, error: EnvelopeDecodeError) -> None:
        self._remove_head()
        self._logger.warning(
            "discarding stored record due to parsing error: %s, record=%s",
            error,
            _truncate(raw),
        )
        with self._stats_lock:
            self._items_discarded_corrupt += 1

    def _remove_head(self) -> None:
        self._store.remove_head()
        self._retry_wakeup = None
        with self._condition:
            # Producers held back by a full queue
            self._condition.notify_all()

    def _record_success(self, envelope: ItemEnvelope, item: W) -> None:
        lag = envelope.age_seconds()
        self._avg_lag.update(lag)
        self._success_rate.mark_events(1)
        with self._stats_lock:
            self._items_succeeded += 1
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(
                "successfully processed item=%s; lagTime=%s",
                self._make_debug_text(envelope, item),
                format_duration(lag),
            )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _try_append(self, serialized: str) -> bool:
        max_events = self._settings.max_events
        if max_events > 0 and self._store.size() >= max_events:
            return False
        return self._store.append(serialized)

    def _safe_queue_size(self) -> int:
        try:
            return self._store.size()
        except Exception:
            self._logger.debug("unable to read queue size", exc_info=True)
            return -1

    def _describe_item(self, item: W) -> str:
        try:
            return self._item_processor.debug_string(item)
        except Exception:
            return "error"

    def _make_debug_text(self, envelope: ItemEnvelope, item: W | None = None) -> str:
        if item is None:
            try:
                item = self._codec.unwrap(envelope)
            except EnvelopeDecodeError:
                item_msg = "error"
            else:
                item_msg = self._describe_item(item)
        else:
            item_msg = self._describe_item(item)

        text = f"[date={envelope.submitted_at.isoformat()},id={envelope.id},item={item_msg}]"
        in_queue = self._safe_queue_size()
        if in_queue > 0:
            text += f", {in_queue} items in queue"
        return text


def _truncate(value: str, limit: int = MAX_RECORD_LOG_LENGTH) -> str:
    if len(value) <= limit:
        return value
    return value[:limit] + "..."
