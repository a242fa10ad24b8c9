"""
Virtual Capacitor and Redstone Output

Simulates a Lapatronic supercapacitor behind an energy adapter and a
six-channel redstone output, for running the controller without
hardware (`lapatronic run --simulate`) and for tests.

The capacitor drains at load_eu_per_s all the time and charges at
charge_eu_per_s while any redstone channel is powered (the redstone
signal switches the generators on).
"""

import time
from typing import Any, Callable

from lapatronic.common.config import SimulatedDeviceSettings
from lapatronic.common.logging_setup import get_service_logger

logger = get_service_logger("simulator")

# Accessor family -> accessors the virtual adapter exposes
ACCESSOR_FAMILIES: dict[str, tuple[str, ...]] = {
    "gt_eu": ("getEUStored", "getEUCapacity"),
    "gt_eu_alt": ("getStoredEU", "getCapacityEU"),
    "energy": ("getEnergyStored", "getMaxEnergyStored"),
    "stored": ("getStored", "getCapacity"),
    "tank": ("tank",),
    "tank_info": ("getTankInfo",),
    "none": (),
}


class VirtualRedstoneIO:
    """Six redstone channels, with optional channels that always fail"""

    CHANNELS = 6

    def __init__(self, failing_channels: list[int] | None = None):
        self.levels = [0] * self.CHANNELS
        self.failing_channels = set(failing_channels or [])
        self.type = "redstone"

    def setOutput(self, channel: int, level: int) -> None:
        if channel in self.failing_channels:
            raise IOError(f"redstone channel {channel} not responding")
        if not 0 <= channel < self.CHANNELS:
            raise ValueError(f"channel {channel} outside 0..{self.CHANNELS - 1}")
        self.levels[channel] = max(0, min(15, int(level)))

    def getOutput(self, channel: int) -> int:
        return self.levels[channel]

    @property
    def powered(self) -> bool:
        return any(level > 0 for level in self.levels)


class VirtualCapacitor:
    """
    Energy adapter attached to a virtual supercapacitor.

    Only the accessors of the configured family exist on the instance,
    the way a real adapter only exposes what its block supports.
    """

    def __init__(
        self,
        settings: SimulatedDeviceSettings | None = None,
        redstone: VirtualRedstoneIO | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or SimulatedDeviceSettings()
        if self.settings.accessor_family not in ACCESSOR_FAMILIES:
            raise ValueError(
                f"Unknown accessor family '{self.settings.accessor_family}'. "
                f"Available: {sorted(ACCESSOR_FAMILIES)}"
            )

        self.redstone = redstone
        self.clock = clock
        self.capacity = self.settings.capacity
        self.energy = min(self.settings.initial_energy, self.capacity)
        self.type = "gt_machine"
        self._last_update = clock()
        self._install_accessors(self.settings.accessor_family)

    def _install_accessors(self, family: str) -> None:
        accessors: dict[str, Any] = {
            "getEUStored": self._stored,
            "getEUCapacity": self._capacity,
            "getStoredEU": self._stored,
            "getCapacityEU": self._capacity,
            "getEnergyStored": self._stored,
            "getMaxEnergyStored": self._capacity,
            "getStored": self._stored,
            "getCapacity": self._capacity,
            "tank": self._tank,
            "getTankInfo": self._tank_info,
        }
        for name in ACCESSOR_FAMILIES[family]:
            setattr(self, name, accessors[name])

        if family == "gt_eu":
            self.getEUInputAverage = lambda: self._input_rate() / 20
            self.getEUOutputAverage = lambda: self.settings.load_eu_per_s / 20
            self.getSensorInformation = self._sensor_information

    def step(self) -> None:
        """Advance the simulation to the current clock time"""
        now = self.clock()
        elapsed = max(0.0, now - self._last_update)
        self._last_update = now

        delta = (self._input_rate() - self.settings.load_eu_per_s) * elapsed
        self.energy = max(0.0, min(self.capacity, self.energy + delta))

    def _input_rate(self) -> float:
        if self.redstone is not None and self.redstone.powered:
            return self.settings.charge_eu_per_s
        return 0.0

    def _stored(self) -> float:
        self.step()
        return self.energy

    def _capacity(self) -> float:
        return self.capacity

    def _tank(self) -> dict:
        self.step()
        return {"amount": self.energy, "capacity": self.capacity}

    def _tank_info(self, index: int = 1) -> list[dict]:
        return [self._tank()]

    def _sensor_information(self) -> list[str]:
        return [
            f"Stored: {self.energy:,.0f} EU",
            f"Input: {self._input_rate() / 20:,.0f} EU/t",
            f"Output: {self.settings.load_eu_per_s / 20:,.0f} EU/t",
        ]


def build_simulated_devices(
    settings: SimulatedDeviceSettings,
    clock: Callable[[], float] = time.monotonic,
) -> tuple[VirtualCapacitor, VirtualRedstoneIO]:
    """Create a wired capacitor/redstone pair"""
    redstone = VirtualRedstoneIO(settings.failing_channels)
    capacitor = VirtualCapacitor(settings, redstone=redstone, clock=clock)
    logger.info(
        f"Simulated capacitor: {capacitor.energy:,.0f}/{capacitor.capacity:,.0f} EU, "
        f"family={settings.accessor_family}"
    )
    return capacitor, redstone
