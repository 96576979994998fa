"""Service layer for the durable work queue."""

from durable_workqueue.services.batch_writer import BatchWriter
from durable_workqueue.services.work_queue import WorkQueueProcessor

__all__ = [
    "BatchWriter",
    "WorkQueueProcessor",
]
