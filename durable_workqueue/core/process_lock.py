"""Cross-process ownership lock for durable backing stores.

A durable store is consumed by at most one process at a time. The store
takes an exclusive file lock when it opens and keeps it until it is closed;
a second process opening the same store waits up to ``timeout`` seconds and
then fails with QueueOwnershipError.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from filelock import FileLock
from filelock import Timeout as FileLockTimeout

from durable_workqueue.core.errors import QueueOwnershipError

logger = logging.getLogger(__name__)


class OwnershipLock:
    """Exclusive, non-reentrant file lock held for the lifetime of a store.

    Example:
        lock = OwnershipLock(Path("/var/lib/app/queue.lock"), timeout=5.0)
        lock.acquire()
        try:
            ...  # this process owns the backlog
        finally:
            lock.release()
    """

    def __init__(
        self,
        lock_path: Path,
        timeout: float = 5.0,
        poll_interval: float = 0.05,
        enabled: bool = True,
    ) -> None:
        """Initialize the ownership lock.

        Args:
            lock_path: Path to the lock file.
            timeout: Maximum seconds to wait for another owner to let go.
            poll_interval: Seconds between lock acquisition attempts.
            enabled: If False, acquire and release are no-ops.
        """
        self.lock_path = lock_path
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.enabled = enabled
        self._held = False
        self._guard = threading.Lock()
        # Ownership may be released from a different thread than the one that
        # took it (e.g. a shutdown hook)
        self._lock: FileLock | None = (
            FileLock(str(lock_path), thread_local=False) if enabled else None
        )

    @property
    def is_held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Take ownership.

        Raises:
            QueueOwnershipError: If another owner holds the lock past the timeout.
        """
        if self._lock is None:
            return
        with self._guard:
            if self._held:
                return
            try:
                self._lock.acquire(timeout=self.timeout, poll_interval=self.poll_interval)
            except FileLockTimeout:
                raise QueueOwnershipError(
                    lock_path=str(self.lock_path),
                    timeout=self.timeout,
                    message=(
                        f"Timed out waiting {self.timeout}s for queue ownership lock "
                        f"{self.lock_path.name}. Another process may own this queue."
                    ),
                ) from None
            self._held = True
            logger.debug("Acquired queue ownership lock %s", self.lock_path.name)

    def release(self) -> None:
        """Give up ownership. Safe to call when not held."""
        if self._lock is None:
            return
        with self._guard:
            if not self._held:
                return
            self._lock.release()
            self._held = False
            logger.debug("Released queue ownership lock %s", self.lock_path.name)

    def __enter__(self) -> OwnershipLock:
        self.acquire()
        return self

    def __exit__(self, *args: object) -> None:
        self.release()
