"""Factory for creating and wiring work queues from settings.

Centralizes how backing stores, queue processors, transaction-size
calculators and batch writers are built from a Settings instance, so
applications and the CLI open stores the same way.

Usage:
    from durable_workqueue.factory import QueueFactory

    factory = QueueFactory(settings)
    queue = factory.create_work_queue("audit", AuditSender(), AuditEvent)
    queue.processor.submit(event)
    ...
    queue.close()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Union

from durable_workqueue.adapters.directory_store import DirectoryBackingStore
from durable_workqueue.adapters.memory_store import InMemoryBackingStore
from durable_workqueue.adapters.sqlite_store import SQLiteBackingStore
from durable_workqueue.config import Settings
from durable_workqueue.core.errors import ConfigurationError
from durable_workqueue.core.models import TransactionSizeSettings, WorkQueueSettings
from durable_workqueue.core.transaction_size import TransactionSizeCalculator
from durable_workqueue.ports.item_processor import ItemProcessor
from durable_workqueue.services.batch_writer import BatchWriter
from durable_workqueue.services.work_queue import WorkQueueProcessor

logger = logging.getLogger(__name__)

BackingStore = Union[InMemoryBackingStore, SQLiteBackingStore, DirectoryBackingStore]


@dataclass
class WorkQueueContainer:
    """A queue processor together with the store it owns.

    Attributes:
        name: Queue name.
        store: Backing store opened for the queue.
        processor: Running queue processor.
    """

    name: str
    store: BackingStore
    processor: WorkQueueProcessor[Any]

    def close(self) -> None:
        """Stop the processor, then close the store."""
        try:
            self.processor.close()
        finally:
            self.store.close()


class QueueFactory:
    """Builds queue components from application settings.

    Example:
        factory = QueueFactory(get_settings())
        store = factory.create_backing_store("audit")
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings

    def create_backing_store(self, name: str) -> BackingStore:
        """Open the configured backing store for a queue.

        Args:
            name: Queue name; used for the database file or directory name.

        Returns:
            The opened store.

        Raises:
            ConfigurationError: If the backend or queue name is invalid.
            QueueOwnershipError: If another process owns the store.
            StorageError: If the store cannot be opened.
        """
        _validate_queue_name(name)
        s = self._settings
        backend = s.store_backend

        if backend == "memory":
            return InMemoryBackingStore(capacity=s.store_capacity)
        if backend == "sqlite":
            return SQLiteBackingStore(
                s.store_path / f"{name}.sqlite3",
                capacity=s.store_capacity,
                lock_timeout=s.filelock_timeout,
                lock_enabled=s.filelock_enabled,
            )
        if backend == "directory":
            return DirectoryBackingStore(
                s.store_path / name,
                capacity=s.store_capacity,
                lock_timeout=s.filelock_timeout,
                lock_enabled=s.filelock_enabled,
            )
        raise ConfigurationError(f"Unknown store backend: {backend!r}")

    def create_work_queue_settings(self) -> WorkQueueSettings:
        s = self._settings
        try:
            return WorkQueueSettings(
                max_events=s.max_events,
                max_submit_wait_seconds=s.max_submit_wait_seconds,
                retry_interval_seconds=s.retry_interval_seconds,
                retry_discard_age_seconds=s.retry_discard_age_seconds,
                max_shutdown_wait_seconds=s.max_shutdown_wait_seconds,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid work queue settings: {e}") from e

    def create_transaction_size_settings(self) -> TransactionSizeSettings:
        s = self._settings
        try:
            return TransactionSizeSettings(
                duration_goal_seconds=s.transaction_duration_goal_seconds,
                min_transactions=s.transaction_min_size,
                max_transactions=s.transaction_max_size,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid transaction size settings: {e}") from e

    def create_work_queue(
        self,
        name: str,
        item_processor: ItemProcessor[Any],
        item_type: Any = Any,
        store: BackingStore | None = None,
    ) -> WorkQueueContainer:
        """Open a store (unless given one) and start a processor on it.

        Args:
            name: Queue name.
            item_processor: Callback handling dequeued items.
            item_type: Declared payload type.
            store: Optional pre-opened store, e.g. for testing.

        Returns:
            WorkQueueContainer owning both the store and the processor.
        """
        queue_settings = self.create_work_queue_settings()
        if store is None:
            store = self.create_backing_store(name)
        try:
            processor: WorkQueueProcessor[Any] = WorkQueueProcessor(
                store,
                queue_settings,
                item_processor,
                item_type=item_type,
                name=name,
            )
        except Exception:
            store.close()
            raise

        logger.info(
            "Work queue '%s' started on %s backend (%d items pending)",
            name,
            self._settings.store_backend,
            store.size(),
        )
        return WorkQueueContainer(name=name, store=store, processor=processor)

    def create_transaction_calculator(self) -> TransactionSizeCalculator:
        return TransactionSizeCalculator(self.create_transaction_size_settings())

    def create_batch_writer(
        self,
        commit: Callable[[Sequence[Any]], Any],
        pause_between_batches: bool = False,
    ) -> BatchWriter[Any]:
        """Create a batch writer driven by a fresh transaction-size calculator."""
        return BatchWriter(
            commit,
            self.create_transaction_calculator(),
            pause_between_batches=pause_between_batches,
        )


def _validate_queue_name(name: str) -> None:
    if not name or name in (".", "..") or any(c in name for c in "/\\\0"):
        raise ConfigurationError(f"Invalid queue name: {name!r}")
