"""SQLite-backed durable backing store.

Values live in a single table keyed by an autoincrement sequence, so FIFO
order survives restarts and the head is always the lowest sequence number:

    CREATE TABLE queue_entries (
        seq   INTEGER PRIMARY KEY AUTOINCREMENT,
        value TEXT NOT NULL
    )

The process that opens the store takes an ownership lock (``<db>.lock``)
and keeps it until close(), so one backlog is never drained by two
processes at once. Because of that, the entry count is tracked in memory
after the initial COUNT(*) at open.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from durable_workqueue.core.errors import StorageError
from durable_workqueue.core.process_lock import OwnershipLock

logger = logging.getLogger(__name__)


class SQLiteBackingStore:
    """Durable FIFO of strings stored in a SQLite database file."""

    def __init__(
        self,
        db_path: Path,
        capacity: int = 0,
        lock_timeout: float = 5.0,
        lock_enabled: bool = True,
    ) -> None:
        """Open (creating if needed) the store.

        Args:
            db_path: Path of the SQLite database file.
            capacity: Maximum number of entries; 0 means unbounded.
            lock_timeout: Seconds to wait for the ownership lock.
            lock_enabled: Take the cross-process ownership lock.

        Raises:
            QueueOwnershipError: If another process owns the store.
            StorageError: If the database cannot be opened.
        """
        self.db_path = Path(db_path)
        self.capacity = capacity
        self._lock = threading.Lock()
        self._connection: sqlite3.Connection | None = None

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ownership = OwnershipLock(
            self.db_path.with_name(self.db_path.name + ".lock"),
            timeout=lock_timeout,
            enabled=lock_enabled,
        )
        self._ownership.acquire()
        try:
            self._connection = self._open()
            self._count = self._query_count()
        except sqlite3.Error as e:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
            self._ownership.release()
            raise StorageError(f"Failed to open queue database {self.db_path.name}: {e}") from e

        if self._count:
            logger.debug("Opened %s with %d queued entries", self.db_path.name, self._count)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS queue_entries (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageError(f"Queue database {self.db_path.name} is closed")
        return self._connection

    def _query_count(self) -> int:
        row = self._conn().execute("SELECT COUNT(*) FROM queue_entries").fetchone()
        return int(row[0])

    def append(self, value: str) -> bool:
        with self._lock:
            if self.capacity > 0 and self._count >= self.capacity:
                return False
            try:
                conn = self._conn()
                conn.execute("INSERT INTO queue_entries (value) VALUES (?)", (value,))
                conn.commit()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to append queue entry: {e}") from e
            self._count += 1
            return True

    def peek_head(self) -> str | None:
        with self._lock:
            try:
                row = (
                    self._conn()
                    .execute("SELECT value FROM queue_entries ORDER BY seq LIMIT 1")
                    .fetchone()
                )
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read queue head: {e}") from e
            return row[0] if row else None

    def remove_head(self) -> None:
        with self._lock:
            try:
                conn = self._conn()
                cursor = conn.execute(
                    "DELETE FROM queue_entries "
                    "WHERE seq = (SELECT MIN(seq) FROM queue_entries)"
                )
                conn.commit()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to remove queue head: {e}") from e
            if cursor.rowcount > 0:
                self._count -= 1

    def size(self) -> int:
        with self._lock:
            return self._count

    def iter_values(self, limit: int | None = None) -> list[str]:
        """Snapshot of stored values, head first."""
        query = "SELECT value FROM queue_entries ORDER BY seq"
        params: tuple[int, ...] = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._lock:
            try:
                rows = self._conn().execute(query, params).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to read queue entries: {e}") from e
        return [row[0] for row in rows]

    def clear(self) -> int:
        """Remove everything. Returns the number of entries removed."""
        with self._lock:
            try:
                conn = self._conn()
                cursor = conn.execute("DELETE FROM queue_entries")
                conn.commit()
            except sqlite3.Error as e:
                raise StorageError(f"Failed to clear queue: {e}") from e
            self._count = 0
            return cursor.rowcount

    def close(self) -> None:
        """Close the database and release ownership. Idempotent."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
        self._ownership.release()

    def __enter__(self) -> SQLiteBackingStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
