"""Protocol interface for the caller-supplied work item handler."""

from __future__ import annotations

from typing import Protocol, TypeVar

from durable_workqueue.core.models import ProcessResult

W_contra = TypeVar("W_contra", contravariant=True)


class ItemProcessor(Protocol[W_contra]):
    """Handles work items dequeued by a WorkQueueProcessor.

    process() may be called more than once for the same item (after RETRY,
    or after a restart that interrupted processing), so it must be
    idempotent. It must not block indefinitely: the queue has a single worker
    and nothing behind the current item moves until it returns.
    """

    def process(self, item: W_contra) -> ProcessResult:
        """Handle one item.

        Returns:
            SUCCESS to remove the item, FAILED to discard it, or RETRY to
            keep it at the head and try again after the retry interval.
        """
        ...

    def debug_string(self, item: W_contra) -> str:
        """Short human-readable description of an item for log messages.

        Must not include secrets carried by the item.
        """
        ...
