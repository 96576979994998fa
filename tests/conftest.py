"""Pytest fixtures for durable work queue tests."""

from __future__ import annotations

import tempfile
import threading
import time
from collections.abc import Callable, Generator, Iterable
from pathlib import Path
from typing import Any

import pytest

from durable_workqueue.config import Settings, override_settings, reset_settings
from durable_workqueue.core.models import ProcessResult, WorkQueueSettings
from durable_workqueue.ports.backing_store import BackingStoreProtocol
from durable_workqueue.services.work_queue import WorkQueueProcessor

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class RecordingProcessor:
    """Item processor that records every call.

    Results are taken from ``results`` in order, then ``default`` forever.
    A result that is an exception instance is raised instead of returned.
    When ``gate`` is given, every call blocks until it is set.
    """

    def __init__(
        self,
        results: Iterable[Any] = (),
        default: Any = ProcessResult.SUCCESS,
        gate: threading.Event | None = None,
        delay: float = 0.0,
    ) -> None:
        self.results = list(results)
        self.default = default
        self.gate = gate
        self.delay = delay
        self.processed: list[Any] = []
        self.call_times: list[float] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.processed)

    def process(self, item: Any) -> Any:
        with self._lock:
            self.processed.append(item)
            self.call_times.append(time.monotonic())
            result = self.results.pop(0) if self.results else self.default
        if self.gate is not None:
            self.gate.wait(timeout=10)
        if self.delay:
            time.sleep(self.delay)
        if isinstance(result, BaseException):
            raise result
        return result

    def debug_string(self, item: Any) -> str:
        return f"item:{item}"


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll until predicate() is true or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


# ---------------------------------------------------------------------------
# Basic fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def temp_storage() -> Generator[Path, None, None]:
    """Provide temporary storage directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_storage: Path) -> Generator[Settings, None, None]:
    """Provide test settings with temp storage."""
    settings = Settings(
        store_path=temp_storage / "queues",
        filelock_timeout=0.2,
        max_submit_wait_seconds=0.5,
        retry_interval_seconds=0.2,
        max_shutdown_wait_seconds=2.0,
        log_level="DEBUG",
    )
    override_settings(settings)
    yield settings
    reset_settings()


@pytest.fixture
def queue_settings() -> WorkQueueSettings:
    """Work queue settings with short timings."""
    return WorkQueueSettings(
        max_events=1000,
        max_submit_wait_seconds=0.5,
        retry_interval_seconds=0.2,
        retry_discard_age_seconds=3600.0,
        max_shutdown_wait_seconds=2.0,
    )


@pytest.fixture
def recording_processor() -> type[RecordingProcessor]:
    """Provide the RecordingProcessor class."""
    return RecordingProcessor


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Provide the polling helper."""
    return wait_for


@pytest.fixture
def make_queue(
    queue_settings: WorkQueueSettings,
) -> Generator[Callable[..., WorkQueueProcessor[Any]], None, None]:
    """Factory for processors that are closed at teardown."""
    created: list[WorkQueueProcessor[Any]] = []

    def _make(
        store: BackingStoreProtocol,
        processor: Any,
        settings: WorkQueueSettings | None = None,
        item_type: Any = str,
        name: str = "test-queue",
    ) -> WorkQueueProcessor[Any]:
        queue: WorkQueueProcessor[Any] = WorkQueueProcessor(
            store,
            settings or queue_settings,
            processor,
            item_type=item_type,
            name=name,
        )
        created.append(queue)
        return queue

    yield _make

    for queue in created:
        queue.close()
