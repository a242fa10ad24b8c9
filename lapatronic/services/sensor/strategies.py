"""
Telemetry Strategies - Known Energy Accessor Shapes

Each strategy knows one way an energy adapter may expose its stored
and maximum energy. Strategies are tried in TELEMETRY_STRATEGIES order
and a strategy only succeeds when every call it makes succeeds and
returns a numeric value.

New shapes can be added by:
1. Create a class extending TelemetryStrategy
2. Define strategy_id and accessors
3. Implement probe()
4. Insert it into TELEMETRY_STRATEGIES at its priority
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AccessorResult:
    """Outcome of one accessor call on the device"""
    ok: bool
    value: Any = None
    error: str | None = None
    missing: bool = False


@dataclass
class ProbeResult:
    """Outcome of one strategy against the device"""
    strategy_id: str
    values: tuple[float, float] | None = None
    errors: dict[str, str] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.values is not None


def call_accessor(device: Any, name: str, *args: Any) -> AccessorResult:
    """
    Call a zero-or-more-argument accessor on an opaque device.

    Absent, non-callable and raising accessors all come back as a
    failed AccessorResult; nothing the device does escapes this call.
    """
    try:
        accessor = getattr(device, name, None)
    except Exception as e:
        return AccessorResult(ok=False, error=f"{type(e).__name__}: {e}")

    if accessor is None:
        return AccessorResult(ok=False, error="not present", missing=True)
    if not callable(accessor):
        return AccessorResult(ok=False, error="not callable", missing=True)

    try:
        value = accessor(*args)
    except Exception as e:
        return AccessorResult(ok=False, error=f"{type(e).__name__}: {e}")

    if value is None:
        return AccessorResult(ok=False, error="returned nil")

    return AccessorResult(ok=True, value=value)


def as_number(value: Any) -> float | None:
    """Return value as float if it is a finite real number, else None"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def _field(container: Any, name: str) -> Any:
    """Read a tank field from a mapping or an object"""
    if isinstance(container, dict):
        return container.get(name)
    return getattr(container, name, None)


class TelemetryStrategy(ABC):
    """Base class for all telemetry strategies"""

    strategy_id: str = "base"
    accessors: tuple[str, ...] = ()

    @abstractmethod
    def probe(self, device: Any) -> ProbeResult:
        """Try this strategy; values is set only on full success"""


class AccessorPairStrategy(TelemetryStrategy):
    """Separate current and maximum accessors, e.g. getEUStored/getEUCapacity"""

    def __init__(self, current_accessor: str, max_accessor: str):
        self.current_accessor = current_accessor
        self.max_accessor = max_accessor
        self.strategy_id = f"{current_accessor}/{max_accessor}"
        self.accessors = (current_accessor, max_accessor)

    def probe(self, device: Any) -> ProbeResult:
        result = ProbeResult(strategy_id=self.strategy_id)
        numbers: list[float] = []

        for name in self.accessors:
            call = call_accessor(device, name)
            if not call.ok:
                if call.missing:
                    result.missing.append(name)
                result.errors[name] = call.error or "unavailable"
                return result

            result.raw[name] = call.value
            number = as_number(call.value)
            if number is None:
                result.errors[name] = f"non-numeric value {call.value!r}"
                return result
            numbers.append(number)

        result.values = (numbers[0], numbers[1])
        return result


class TankStrategy(TelemetryStrategy):
    """tank() returning {amount, capacity}"""

    strategy_id = "tank()"
    accessors = ("tank",)

    def probe(self, device: Any) -> ProbeResult:
        result = ProbeResult(strategy_id=self.strategy_id)

        call = call_accessor(device, "tank")
        if not call.ok:
            if call.missing:
                result.missing.append("tank")
            result.errors["tank"] = call.error or "unavailable"
            return result

        result.raw["tank"] = call.value
        return _tank_values(result, call.value, "tank")


class TankInfoStrategy(TelemetryStrategy):
    """getTankInfo(1) returning a list whose first entry has {amount, capacity}"""

    strategy_id = "getTankInfo(1)"
    accessors = ("getTankInfo",)

    def probe(self, device: Any) -> ProbeResult:
        result = ProbeResult(strategy_id=self.strategy_id)

        call = call_accessor(device, "getTankInfo", 1)
        if not call.ok:
            if call.missing:
                result.missing.append("getTankInfo")
            result.errors["getTankInfo"] = call.error or "unavailable"
            return result

        result.raw["getTankInfo"] = call.value
        tanks = call.value
        if isinstance(tanks, (str, bytes, dict)) or not hasattr(tanks, "__getitem__"):
            result.errors["getTankInfo"] = f"not a tank list: {tanks!r}"
            return result

        try:
            first = tanks[0]
        except (IndexError, KeyError, TypeError):
            result.errors["getTankInfo"] = "empty tank list"
            return result

        return _tank_values(result, first, "getTankInfo")


def _tank_values(result: ProbeResult, tank: Any, accessor: str) -> ProbeResult:
    amount = as_number(_field(tank, "amount"))
    capacity = as_number(_field(tank, "capacity"))

    if amount is None or capacity is None:
        result.errors[accessor] = f"tank without numeric amount/capacity: {tank!r}"
        return result

    result.values = (amount, capacity)
    return result


# Priority order matters: the first strategy that fully succeeds wins
TELEMETRY_STRATEGIES: list[TelemetryStrategy] = [
    AccessorPairStrategy("getEUStored", "getEUCapacity"),
    AccessorPairStrategy("getStoredEU", "getCapacityEU"),
    AccessorPairStrategy("getEnergyStored", "getMaxEnergyStored"),
    AccessorPairStrategy("getStored", "getCapacity"),
    TankStrategy(),
    TankInfoStrategy(),
]
