"""Unit tests for windowed statistics helpers."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from durable_workqueue.core import stats as stats_module
from durable_workqueue.core.stats import EventRateMeter, MovingAverage

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(stats_module, "time", SimpleNamespace(monotonic=fake.monotonic))
    return fake


class TestMovingAverage:
    def test_empty_average_is_zero(self, clock: FakeClock) -> None:
        avg = MovingAverage(60)

        assert avg.average == 0.0
        assert avg.count == 0

    def test_average_of_samples(self, clock: FakeClock) -> None:
        avg = MovingAverage(60)
        avg.update(1.0)
        avg.update(3.0)

        assert avg.average == pytest.approx(2.0)
        assert avg.count == 2

    def test_old_samples_leave_window(self, clock: FakeClock) -> None:
        avg = MovingAverage(60)
        avg.update(10.0)
        clock.advance(45)
        avg.update(2.0)
        clock.advance(30)

        assert avg.count == 1
        assert avg.average == pytest.approx(2.0)

    def test_rejects_non_positive_window(self) -> None:
        with pytest.raises(ValueError):
            MovingAverage(0)


class TestEventRateMeter:
    def test_rate_over_elapsed_time_before_full_window(self, clock: FakeClock) -> None:
        meter = EventRateMeter(3600)
        clock.advance(5)
        meter.mark_events(10)

        assert meter.read_event_rate() == pytest.approx(2.0)

    def test_rate_over_full_window(self, clock: FakeClock) -> None:
        meter = EventRateMeter(100)
        clock.advance(150)
        meter.mark_events(50)

        assert meter.read_event_rate() == pytest.approx(0.5)

    def test_events_expire(self, clock: FakeClock) -> None:
        meter = EventRateMeter(100)
        clock.advance(10)
        meter.mark_events(5)
        clock.advance(200)

        assert meter.read_event_rate() == 0.0

    def test_no_time_elapsed_reads_zero(self, clock: FakeClock) -> None:
        meter = EventRateMeter(100)

        assert meter.read_event_rate() == 0.0
