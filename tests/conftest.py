"""
Shared test fixtures for pytest
"""

import time

import pytest

from diceautobet.adapters.screen.mock_sampler import solid_frame
from diceautobet.orchestrator.config import SessionConfig
from diceautobet.orchestrator.contracts import Region, ScreenSample
from diceautobet.services.status_store import StatusStore

REGIONS = {"A": Region(0, 0, 80, 40), "B": Region(100, 0, 80, 40)}


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.now += max(0.0, seconds)


class FakeTable:
    """
    Screen + tap target of a simulated table.

    Each instance's dice region shows a new frame every `period` samples, as
    if the table produced a result on a fixed cadence. Frames are plain gray
    so the overlay filter never fires. Taps are recorded per instance.
    """

    def __init__(self, period: int = 12, fail_on: set[str] | None = None):
        self.period = period
        self.fail_on = set(fail_on or ())
        self.samples = 0
        self.taps: list[tuple[str, str]] = []

    def frame_value(self) -> int:
        return 30 + (self.samples // self.period % 10) * 10

    def sample(self, region):
        self.samples += 1
        return ScreenSample(pixels=solid_frame(self.frame_value()), timestamp=time.time(), region=region)

    def dispatch(self, action, instance) -> bool:
        if action.target in self.fail_on:
            return False
        self.taps.append((instance, action.target))
        return True

    def targets(self, instance: str | None = None) -> list[str]:
        return [t for i, t in self.taps if instance is None or i == instance]


class FrozenTable(FakeTable):
    """Screen that never changes."""

    def frame_value(self) -> int:
        return 50


class BlankScreen(FakeTable):
    """Sampler that never delivers a frame."""

    def sample(self, region):
        self.samples += 1
        return None


def make_config(**overrides) -> SessionConfig:
    """Fast, deterministic session settings for orchestrator tests."""
    values = dict(
        regions=dict(REGIONS),
        detection_timeout_s=5.0,
        tap_delay_s=0.0,
        retry_backoff_s=0.0,
        duplicate_window_s=0.0,
        sample_timeout_s=2.0,
        classify_timeout_s=2.0,
    )
    values.update(overrides)
    return SessionConfig(**values)


@pytest.fixture
def status():
    """Fresh StatusStore"""
    return StatusStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def table():
    return FakeTable()
