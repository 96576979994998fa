"""In-process backing store.

Not durable: contents are lost with the process. Useful for tests and for
embedding the queue processor where losing the backlog on restart is
acceptable.
"""

from __future__ import annotations

import threading
from collections import deque


class InMemoryBackingStore:
    """Thread-safe FIFO of strings with an optional capacity."""

    def __init__(self, capacity: int = 0, values: list[str] | None = None) -> None:
        """Initialize the store.

        Args:
            capacity: Maximum number of values; 0 means unbounded.
            values: Initial contents, head first.
        """
        self.capacity = capacity
        self._values: deque[str] = deque(values or [])
        self._lock = threading.Lock()

    def append(self, value: str) -> bool:
        with self._lock:
            if self.capacity > 0 and len(self._values) >= self.capacity:
                return False
            self._values.append(value)
            return True

    def peek_head(self) -> str | None:
        with self._lock:
            return self._values[0] if self._values else None

    def remove_head(self) -> None:
        with self._lock:
            if self._values:
                self._values.popleft()

    def size(self) -> int:
        with self._lock:
            return len(self._values)

    def iter_values(self, limit: int | None = None) -> list[str]:
        """Snapshot of stored values, head first."""
        with self._lock:
            values = list(self._values)
        return values if limit is None else values[:limit]

    def clear(self) -> int:
        """Remove everything. Returns the number of values removed."""
        with self._lock:
            count = len(self._values)
            self._values.clear()
            return count

    def close(self) -> None:
        pass
