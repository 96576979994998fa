"""Port interfaces for the durable work queue."""

from durable_workqueue.ports.backing_store import BackingStoreProtocol
from durable_workqueue.ports.item_processor import ItemProcessor

__all__ = [
    "BackingStoreProtocol",
    "ItemProcessor",
]
