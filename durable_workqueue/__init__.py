"""Durable Work Queue - persistent background work processing with backpressure."""

__version__ = "0.1.0"

# Re-export core components for convenience
from durable_workqueue.adapters import (
    DirectoryBackingStore,
    InMemoryBackingStore,
    SQLiteBackingStore,
)
from durable_workqueue.config import Settings, get_settings
from durable_workqueue.core import (
    ConfigurationError,
    EnvelopeDecodeError,
    ProcessResult,
    QueueClosedError,
    QueueOwnershipError,
    QueueSaturatedError,
    StorageError,
    TransactionSizeCalculator,
    TransactionSizeSettings,
    WorkQueueError,
    WorkQueueSettings,
)
from durable_workqueue.ports import BackingStoreProtocol, ItemProcessor
from durable_workqueue.services import BatchWriter, WorkQueueProcessor

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "WorkQueueError",
    "QueueClosedError",
    "QueueSaturatedError",
    "EnvelopeDecodeError",
    "StorageError",
    "QueueOwnershipError",
    "ConfigurationError",
    # Models
    "ProcessResult",
    "WorkQueueSettings",
    "TransactionSizeSettings",
    # Protocols
    "BackingStoreProtocol",
    "ItemProcessor",
    # Stores
    "InMemoryBackingStore",
    "SQLiteBackingStore",
    "DirectoryBackingStore",
    # Services
    "WorkQueueProcessor",
    "TransactionSizeCalculator",
    "BatchWriter",
]
