"""Shared fixtures for the simulator tests."""

from __future__ import annotations

import random
import threading

import pytest

from mock_location.channels import MemorySink, OutputSink
from mock_location.config import SimulatorConfig
from mock_location.errors import PublishError
from mock_location.models import Waypoint


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 100.0):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float):
        with self._lock:
            self.now += seconds


class FlakySink(OutputSink):
    """Sink with one channel that always fails."""

    def __init__(self, channels=("gps", "broken", "network")):
        self._channels = list(channels)
        self.published = []
        self.closed = False

    def channels(self):
        return list(self._channels)

    def publish(self, sample, channel):
        if channel == "broken":
            raise PublishError("channel unavailable", channel=channel)
        self.published.append((channel, sample))

    def close(self):
        self.closed = True


@pytest.fixture
def unit_square():
    return [Waypoint(0.0, 0.0), Waypoint(0.0, 1.0), Waypoint(1.0, 1.0), Waypoint(1.0, 0.0)]


@pytest.fixture
def small_loop():
    # roughly 10 m sides
    return [
        Waypoint(39.0850, 121.8085),
        Waypoint(39.08509, 121.8085),
        Waypoint(39.08509, 121.80862),
        Waypoint(39.0850, 121.80862),
    ]


@pytest.fixture
def memory_sink():
    return MemorySink(channels=("gps", "network"))


@pytest.fixture
def fast_config():
    return SimulatorConfig(interval_seconds=0.01, warmup_samples=0, warmup_interval_seconds=0.0)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def flaky_sink():
    return FlakySink()
