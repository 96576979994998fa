"""Protocol interface for the ordered string log behind a work queue.

Using typing.Protocol enables structural subtyping: any object with these
methods can back a WorkQueueProcessor, including stores owned by the
embedding application.
"""

from __future__ import annotations

from typing import Protocol


class BackingStoreProtocol(Protocol):
    """Ordered FIFO sequence of serialized envelopes.

    Producers only append at the tail; the single queue worker only reads and
    removes at the head. Implementations must be safe to call from both sides
    concurrently, and durable implementations must keep their contents across
    process restarts.
    """

    def append(self, value: str) -> bool:
        """Append a value to the tail.

        Args:
            value: Serialized envelope.

        Returns:
            True if stored, False if the store is full.

        Raises:
            StorageError: If the underlying storage fails.
        """
        ...

    def peek_head(self) -> str | None:
        """Return the head value without removing it, or None when empty.

        Raises:
            StorageError: If the underlying storage fails.
        """
        ...

    def remove_head(self) -> None:
        """Remove the head value. No-op when empty.

        Raises:
            StorageError: If the underlying storage fails.
        """
        ...

    def size(self) -> int:
        """Number of values currently stored."""
        ...
