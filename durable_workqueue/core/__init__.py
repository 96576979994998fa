"""Core components for the durable work queue."""

from durable_workqueue.core.envelope import EnvelopeCodec, ItemEnvelope, LoopingIdGenerator
from durable_workqueue.core.errors import (
    ConfigurationError,
    EnvelopeDecodeError,
    QueueClosedError,
    QueueOwnershipError,
    QueueSaturatedError,
    StorageError,
    WorkQueueError,
)
from durable_workqueue.core.models import (
    ProcessResult,
    TransactionSizeSettings,
    WorkQueueSettings,
)
from durable_workqueue.core.transaction_size import TransactionSizeCalculator

__all__ = [
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
    "ItemEnvelope",
    # Services
    "EnvelopeCodec",
    "LoopingIdGenerator",
    "TransactionSizeCalculator",
]
