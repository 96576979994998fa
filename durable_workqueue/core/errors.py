"""Custom exceptions for the durable work queue."""

from pathlib import Path


def sanitize_path_for_error(path: str | Path) -> str:
    """Extract only the filename from a path for safe error messages.

    Args:
        path: Full path or filename.

    Returns:
        Just the filename portion.
    """
    if isinstance(path, Path):
        return path.name
    return Path(path).name


class WorkQueueError(Exception):
    """Base exception for all work queue errors."""

    pass


class QueueClosedError(WorkQueueError):
    """Raised when an item is submitted to a processor that is shutting down."""

    def __init__(self, queue_name: str) -> None:
        self.queue_name = queue_name
        super().__init__(f"work queue '{queue_name}' has been closed, unable to submit new item")


class QueueSaturatedError(WorkQueueError):
    """Raised when the queue stays full for longer than the submit wait time.

    The message names the rejected item so the failure can be traced back to
    its producer.
    """

    def __init__(self, queue_name: str, wait_seconds: float, item_description: str) -> None:
        self.queue_name = queue_name
        self.wait_seconds = wait_seconds
        self.item_description = item_description
        super().__init__(
            f"unable to submit item to work queue '{queue_name}' after "
            f"{wait_seconds:.3g}s, item={item_description}"
        )


class EnvelopeDecodeError(WorkQueueError):
    """Raised when a stored envelope cannot be parsed back into a work item."""

    pass


class StorageError(WorkQueueError):
    """Raised when backing store operations fail."""

    pass


class QueueOwnershipError(StorageError):
    """Raised when another process already owns a durable backing store.

    Note:
        Error messages only include the filename, not the full path.
    """

    def __init__(
        self,
        lock_path: str,
        timeout: float,
        message: str | None = None,
    ) -> None:
        self.lock_path = lock_path
        self.timeout = timeout
        safe_name = sanitize_path_for_error(lock_path)
        self.message = message or (
            f"Failed to acquire queue ownership lock at {safe_name} after {timeout}s"
        )
        super().__init__(self.message)


class ConfigurationError(WorkQueueError):
    """Raised when configuration is invalid."""

    pass
