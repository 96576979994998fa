"""Submit latency and drain throughput benchmark for the work queue.

Measures, for each backing store:
1. Submit: wrap + serialize + append one item (what a producer thread pays)
2. Drain: time for the worker to process a 1000-item backlog end to end

Usage:
    python benchmarks/submit_latency.py
"""

from __future__ import annotations

import statistics
import sys
import tempfile
import threading
import time
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from durable_workqueue.adapters.directory_store import DirectoryBackingStore
from durable_workqueue.adapters.memory_store import InMemoryBackingStore
from durable_workqueue.adapters.sqlite_store import SQLiteBackingStore
from durable_workqueue.core.envelope import EnvelopeCodec
from durable_workqueue.core.models import ProcessResult, WorkQueueSettings
from durable_workqueue.services.work_queue import WorkQueueProcessor

# Thresholds (median must be below these, or exit code 1)
SUBMIT_THRESHOLD_MS = {"memory": 1.0, "sqlite": 10.0, "directory": 10.0}

BACKLOG_SIZE = 1000


class AuditRecord(BaseModel):
    actor: str
    action: str
    target: str
    detail: dict[str, str]


SAMPLE = AuditRecord(
    actor="cn=svc-sync,ou=services,o=example",
    action="password_change",
    target="uid=jdoe,ou=people,o=example",
    detail={"source": "self-service", "client": "10.0.0.12"},
)


class CountingProcessor:
    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.count = 0
        self.done = threading.Event()

    def process(self, item: AuditRecord) -> ProcessResult:
        self.count += 1
        if self.count >= self.expected:
            self.done.set()
        return ProcessResult.SUCCESS

    def debug_string(self, item: AuditRecord) -> str:
        return item.action


def _fmt_ms(seconds: float) -> str:
    return f"{seconds * 1000:.2f}ms"


def _open_store(backend: str, root: Path) -> Any:
    if backend == "memory":
        return InMemoryBackingStore()
    if backend == "sqlite":
        return SQLiteBackingStore(root / "bench.sqlite3")
    return DirectoryBackingStore(root / "bench")


def bench_submit(backend: str, iterations: int = 200) -> list[float]:
    """Benchmark submit() with a worker that never catches up."""
    gate = threading.Event()

    class BlockedProcessor:
        def process(self, item: AuditRecord) -> ProcessResult:
            gate.wait()
            return ProcessResult.SUCCESS

        def debug_string(self, item: AuditRecord) -> str:
            return item.action

    with tempfile.TemporaryDirectory() as tmpdir:
        store = _open_store(backend, Path(tmpdir))
        settings = WorkQueueSettings(max_events=0, max_shutdown_wait_seconds=0.1)
        queue = WorkQueueProcessor(store, settings, BlockedProcessor(), AuditRecord, "bench")

        timings: list[float] = []
        try:
            for _ in range(iterations):
                start = time.perf_counter()
                queue.submit(SAMPLE)
                timings.append(time.perf_counter() - start)
        finally:
            gate.set()
            queue.close()
            store.close()

    return timings


def bench_drain(backend: str) -> float:
    """Seconds for a fresh processor to work through a stored backlog."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        store = _open_store(backend, root)

        codec: EnvelopeCodec[AuditRecord] = EnvelopeCodec(AuditRecord)
        for i in range(BACKLOG_SIZE):
            store.append(codec.encode(codec.wrap(SAMPLE, str(i))))

        processor = CountingProcessor(BACKLOG_SIZE)
        start = time.perf_counter()
        queue = WorkQueueProcessor(store, WorkQueueSettings(), processor, AuditRecord, "bench")
        processor.done.wait(timeout=120)
        elapsed = time.perf_counter() - start

        queue.close()
        store.close()
    return elapsed


def print_results(label: str, timings: list[float]) -> float:
    """Print formatted results table row and return median in seconds."""
    mn = min(timings)
    median = statistics.median(timings)
    p95 = sorted(timings)[int(len(timings) * 0.95)]
    mx = max(timings)
    print(
        f"  {label:<20s}  {_fmt_ms(mn):>10s}  {_fmt_ms(median):>10s}  "
        f"{_fmt_ms(p95):>10s}  {_fmt_ms(mx):>10s}"
    )
    return median


def main() -> int:
    """Run all benchmarks and report results."""
    backends = ["memory", "sqlite", "directory"]
    print("Work queue benchmark")
    print("=" * 78)
    print()
    print(f"  {'Submit':<20s}  {'Min':>10s}  {'Median':>10s}  {'P95':>10s}  {'Max':>10s}")
    print(f"  {'-' * 20}  {'-' * 10}  {'-' * 10}  {'-' * 10}  {'-' * 10}")

    medians = {backend: print_results(backend, bench_submit(backend)) for backend in backends}

    print()
    print(f"  Drain of {BACKLOG_SIZE} items:")
    for backend in backends:
        elapsed = bench_drain(backend)
        print(f"  {backend:<20s}  {elapsed:>8.2f}s  ({BACKLOG_SIZE / elapsed:,.0f} items/s)")

    print()
    print("Threshold check:")

    failed = False
    for backend, median in medians.items():
        threshold = SUBMIT_THRESHOLD_MS[backend]
        if median * 1000 > threshold:
            print(f"  FAIL: {backend} submit median {_fmt_ms(median)} > {threshold}ms threshold")
            failed = True
        else:
            print(f"  PASS: {backend} submit median {_fmt_ms(median)} <= {threshold}ms threshold")

    print()
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
