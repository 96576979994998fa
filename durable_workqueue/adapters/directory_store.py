"""Maildir-style durable backing store.

Each queued value is one file. Layout:

    <queue_dir>/
        tmp/        # Partial writes (crash-safe)
        new/        # Delivered entries, one file each
        queue.lock  # Ownership lock held by the consuming process

Appends write to ``tmp/`` and then ``os.replace()`` into ``new/``, so a
crash never leaves a half-written entry in the queue. Entry names are a
zero-padded sequence number (``00000000000000000042.entry``): sorting names
gives FIFO order, and the next sequence continues after the highest name
found at open.

Since the owning process is the only writer, the ordered list of entry
names is kept in memory and the directory is only scanned at open.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from collections import deque
from pathlib import Path

from durable_workqueue.core.errors import StorageError
from durable_workqueue.core.process_lock import OwnershipLock

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".entry"
_ENTRY_NAME_RE = re.compile(r"^(\d{20})\.entry$")


class DirectoryBackingStore:
    """Durable FIFO of strings stored as files in a directory."""

    def __init__(
        self,
        queue_dir: Path,
        capacity: int = 0,
        lock_timeout: float = 5.0,
        lock_enabled: bool = True,
    ) -> None:
        """Open (creating if needed) the store.

        Args:
            queue_dir: Root directory of the queue.
            capacity: Maximum number of entries; 0 means unbounded.
            lock_timeout: Seconds to wait for the ownership lock.
            lock_enabled: Take the cross-process ownership lock.

        Raises:
            QueueOwnershipError: If another process owns the store.
            StorageError: If the directory cannot be prepared or scanned.
        """
        self.queue_dir = Path(queue_dir)
        self.capacity = capacity
        self._tmp_dir = self.queue_dir / "tmp"
        self._new_dir = self.queue_dir / "new"
        self._lock = threading.Lock()
        self._closed = False

        try:
            self._tmp_dir.mkdir(parents=True, exist_ok=True)
            self._new_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create queue directory {self.queue_dir.name}: {e}") from e

        self._ownership = OwnershipLock(
            self.queue_dir / "queue.lock",
            timeout=lock_timeout,
            enabled=lock_enabled,
        )
        self._ownership.acquire()
        try:
            self._startup_recovery()
            self._entries: deque[tuple[int, Path]] = self._scan()
        except OSError as e:
            self._ownership.release()
            raise StorageError(f"Failed to scan queue directory {self.queue_dir.name}: {e}") from e

        self._next_seq = self._entries[-1][0] + 1 if self._entries else 0
        if self._entries:
            logger.debug(
                "Opened %s with %d queued entries", self.queue_dir.name, len(self._entries)
            )

    def _startup_recovery(self) -> None:
        """Delete orphaned tmp/ files.

        A file left in tmp/ belongs to an append that never completed, so its
        producer was never told the item was queued.
        """
        deleted = 0
        for f in self._tmp_dir.iterdir():
            if f.is_file():
                f.unlink(missing_ok=True)
                deleted += 1
        if deleted:
            logger.info("Startup recovery: deleted %d incomplete queue writes", deleted)

    def _scan(self) -> deque[tuple[int, Path]]:
        entries: list[tuple[int, Path]] = []
        for f in self._new_dir.iterdir():
            match = _ENTRY_NAME_RE.match(f.name)
            if match is None:
                logger.warning("Ignoring unexpected file in queue directory: %s", f.name)
                continue
            entries.append((int(match.group(1)), f))
        entries.sort()
        return deque(entries)

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError(f"Queue directory {self.queue_dir.name} is closed")

    def append(self, value: str) -> bool:
        with self._lock:
            self._check_open()
            if self.capacity > 0 and len(self._entries) >= self.capacity:
                return False
            seq = self._next_seq
            name = f"{seq:020d}{ENTRY_SUFFIX}"
            tmp_path = self._tmp_dir / name
            new_path = self._new_dir / name
            try:
                tmp_path.write_text(value, encoding="utf-8")
                os.replace(str(tmp_path), str(new_path))
            except OSError as e:
                tmp_path.unlink(missing_ok=True)
                raise StorageError(f"Failed to write queue entry {name}: {e}") from e
            self._next_seq = seq + 1
            self._entries.append((seq, new_path))
            return True

    def peek_head(self) -> str | None:
        with self._lock:
            self._check_open()
            if not self._entries:
                return None
            _, path = self._entries[0]
            try:
                # Undecodable bytes are passed through for the consumer to
                # reject as a corrupt entry
                return path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                raise StorageError(f"Failed to read queue entry {path.name}: {e}") from e

    def remove_head(self) -> None:
        with self._lock:
            self._check_open()
            if not self._entries:
                return
            _, path = self._entries[0]
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to remove queue entry {path.name}: {e}") from e
            self._entries.popleft()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def iter_values(self, limit: int | None = None) -> list[str]:
        """Snapshot of stored values, head first."""
        with self._lock:
            self._check_open()
            paths = [path for _, path in self._entries]
        if limit is not None:
            paths = paths[:limit]
        values = []
        for path in paths:
            try:
                values.append(path.read_text(encoding="utf-8", errors="replace"))
            except FileNotFoundError:
                # Removed by the worker since the snapshot was taken
                continue
            except OSError as e:
                raise StorageError(f"Failed to read queue entry {path.name}: {e}") from e
        return values

    def clear(self) -> int:
        """Remove everything. Returns the number of entries removed."""
        with self._lock:
            self._check_open()
            count = 0
            while self._entries:
                _, path = self._entries[0]
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    raise StorageError(f"Failed to remove queue entry {path.name}: {e}") from e
                self._entries.popleft()
                count += 1
            return count

    def close(self) -> None:
        """Release ownership. Idempotent."""
        with self._lock:
            self._closed = True
        self._ownership.release()

    def __enter__(self) -> DirectoryBackingStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
