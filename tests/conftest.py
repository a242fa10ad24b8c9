"""
Shared test fixtures for the lapatronic test suite.

Provides:
- A manual clock for deterministic timestamps
- Fake energy adapters for each accessor shape
- A fake redstone output with per-channel failures
- A ControllerConfig factory

Fake devices are plain classes rather than MagicMock: a MagicMock
answers every attribute, which would make every telemetry strategy
look present.
"""

from __future__ import annotations

import os

import pytest

# ---------------------------------------------------------------------------
# Logging - keep test output clean
# ---------------------------------------------------------------------------
# Service loggers read the level when their module is imported
os.environ["LAPATRONIC_LOG_LEVEL"] = "WARNING"

from lapatronic.common.config import ControllerConfig, DeviceBackend, DeviceSettings  # noqa: E402
from lapatronic.common.logging_setup import set_log_level  # noqa: E402

set_log_level("WARNING")


class ManualClock:
    """Monotonic clock advanced by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class EUAdapter:
    """Adapter exposing getEUStored/getEUCapacity"""

    def __init__(self, stored: float = 500.0, capacity: float = 1000.0):
        self.stored = stored
        self.capacity = capacity
        self.calls = 0

    def getEUStored(self):
        self.calls += 1
        return self.stored

    def getEUCapacity(self):
        return self.capacity


class FailingAdapter:
    """Adapter whose accessors all raise"""

    def getEUStored(self):
        raise RuntimeError("peripheral detached")

    def getEUCapacity(self):
        raise RuntimeError("peripheral detached")


class UnknownAdapter:
    """Adapter with no recognized accessors"""

    def getFoo(self):
        return 1

    def setBar(self, value):
        raise AssertionError("setters must never be called")

    def isBaz(self):
        return True


class FakeRedstone:
    """Six-channel output recording every write"""

    def __init__(self, failing_channels: set[int] | None = None):
        self.failing_channels = set(failing_channels or ())
        self.levels = [0] * 6
        self.writes: list[tuple[int, int]] = []

    def setOutput(self, channel: int, level: int) -> None:
        self.writes.append((channel, level))
        if channel in self.failing_channels:
            raise IOError(f"channel {channel} not responding")
        self.levels[channel] = level

    def applies(self) -> list[list[tuple[int, int]]]:
        """Writes grouped into apply calls of six channels"""
        return [self.writes[i:i + 6] for i in range(0, len(self.writes), 6)]


# ========================== Fixtures ==============================


@pytest.fixture(autouse=True)
def quiet_logging():
    """Undo DEBUG levels set by --verbose / debug-energy"""
    yield
    set_log_level("WARNING")


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def eu_adapter():
    return EUAdapter()


@pytest.fixture()
def redstone():
    return FakeRedstone()


@pytest.fixture()
def make_config():
    """Factory for ControllerConfig with simulated devices"""

    def _make(**overrides) -> ControllerConfig:
        overrides.setdefault("devices", DeviceSettings(backend=DeviceBackend.SIMULATED))
        return ControllerConfig(**overrides)

    return _make
