"""Backing store adapters for the durable work queue."""

from durable_workqueue.adapters.directory_store import DirectoryBackingStore
from durable_workqueue.adapters.memory_store import InMemoryBackingStore
from durable_workqueue.adapters.sqlite_store import SQLiteBackingStore

__all__ = [
    "DirectoryBackingStore",
    "InMemoryBackingStore",
    "SQLiteBackingStore",
]
