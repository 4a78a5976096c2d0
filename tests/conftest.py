"""Shared pytest fixtures for all tests."""

import pytest
from datetime import datetime, timedelta, timezone

from duskshift.display import BackendError, DisplayBackend
from duskshift.mock_hardware import MockDisplayBackend
from duskshift.settings import build_settings
from duskshift.state import SchedulerStatus


class FakeClock:
    """
    Deterministic wall/monotonic clock pair.

    sleep() advances both clocks instead of blocking and records the
    requested interval.
    """

    def __init__(self, start: datetime):
        self.start = start
        self.elapsed = 0.0
        self.sleeps: list[float] = []

    def wall(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def monotonic(self) -> float:
        return 1000.0 + self.elapsed

    def sleep(self, interval: float) -> None:
        self.sleeps.append(interval)
        self.elapsed += interval


class RecordingBackend(DisplayBackend):
    """
    Backend recording every call.

    Optionally stops a scheduler after N calls or fails on the Nth call.
    """

    name = "recording"

    def __init__(self, stop_after: int | None = None, fail_on: int | None = None):
        self.calls: list[tuple] = []
        self.stop_after = stop_after
        self.fail_on = fail_on
        self.scheduler = None
        self.closed = False

    @property
    def temperatures(self) -> list[int]:
        return [temperature for _, temperature, _ in self.calls]

    def set_temperature(self, screen, temperature, gamma):
        self.calls.append((screen, temperature, gamma))
        if self.fail_on is not None and len(self.calls) >= self.fail_on:
            raise BackendError("simulated display failure")
        if self.stop_after is not None and len(self.calls) >= self.stop_after and self.scheduler:
            self.scheduler.stop()

    def close(self):
        self.closed = True


@pytest.fixture
def fake_clock():
    """Clock starting at the 2024 June solstice, noon UTC."""
    return FakeClock(datetime(2024, 6, 21, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def recording_backend():
    """Factory for RecordingBackend instances."""
    return RecordingBackend


@pytest.fixture
def mock_display():
    """Mock display backend."""
    return MockDisplayBackend()


@pytest.fixture
def status():
    """Fresh scheduler status (not the global instance)."""
    return SchedulerStatus()


@pytest.fixture
def settings():
    """Continuous-mode settings for Bydgoszcz with default temperatures."""
    return build_settings(latitude=53.1235, longitude=18.0084)


@pytest.fixture
def one_shot_settings():
    """Single-shot settings for Bydgoszcz."""
    return build_settings(latitude=53.1235, longitude=18.0084, one_shot=True)
