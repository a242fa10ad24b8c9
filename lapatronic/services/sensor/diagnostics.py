"""
Sensor Diagnostics

Troubleshooting helpers behind the `inspect` and `test-energy` CLI
commands. Nothing here feeds control decisions.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from lapatronic.common.logging_setup import get_service_logger
from .reader import candidate_accessors
from .strategies import TELEMETRY_STRATEGIES, TelemetryStrategy, as_number, call_accessor

logger = get_service_logger("sensor.diagnostics")

# Accessors that may report average input/output, first non-null wins
INPUT_RATE_ACCESSORS = [
    "getEUInputAverage",
    "getAverageInputVoltage",
    "getInputVoltage",
    "getEUInput",
    "getInputEU",
]
OUTPUT_RATE_ACCESSORS = [
    "getEUOutputAverage",
    "getAverageOutputVoltage",
    "getOutputVoltage",
    "getEUOutput",
    "getOutputEU",
]

_NUMBER_RE = re.compile(r"([\d][\d,]*(?:\.\d+)?)")


@dataclass
class StrategyReport:
    """Result of testing one telemetry strategy"""
    strategy_id: str
    available: bool
    working: bool
    current_energy: float | None = None
    max_energy: float | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def percent(self) -> float | None:
        if not self.working or not self.max_energy:
            return None
        return self.current_energy / self.max_energy

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy_id,
            "available": self.available,
            "working": self.working,
            "current_energy": self.current_energy,
            "max_energy": self.max_energy,
            "percent": self.percent,
            "errors": self.errors,
        }


@dataclass
class AccessorReport:
    """Result of calling one candidate accessor with no arguments"""
    name: str
    ok: bool
    value: Any = None
    error: str | None = None


def probe_all_strategies(
    device: Any,
    strategies: list[TelemetryStrategy] | None = None,
) -> list[StrategyReport]:
    """
    Run every strategy (not just the first working one).

    A strategy counts as working only when it returns values and a
    non-zero capacity.
    """
    reports = []
    for strategy in strategies or TELEMETRY_STRATEGIES:
        probe = strategy.probe(device)
        available = len(probe.missing) == 0
        report = StrategyReport(
            strategy_id=strategy.strategy_id,
            available=available,
            working=False,
            errors=dict(probe.errors),
        )
        if probe.ok:
            report.current_energy, report.max_energy = probe.values
            if report.max_energy > 0:
                report.working = True
            else:
                report.errors["capacity"] = "maximum energy is 0"
        reports.append(report)

        logger.debug(
            f"Strategy {strategy.strategy_id}: "
            f"{'working' if report.working else 'failing'}",
            extra=report.to_dict(),
        )
    return reports


def inspect_accessors(device: Any) -> list[AccessorReport]:
    """Call every get*/set*/is* accessor without arguments and record the outcome"""
    reports = []
    for name in candidate_accessors(device):
        # Setters would change device state, only list them
        if name.startswith("set"):
            reports.append(AccessorReport(name=name, ok=False, error="setter not called"))
            continue

        call = call_accessor(device, name)
        reports.append(AccessorReport(
            name=name,
            ok=call.ok,
            value=call.value,
            error=call.error,
        ))
    return reports


def _first_number(device: Any, accessors: list[str]) -> float | None:
    for name in accessors:
        call = call_accessor(device, name)
        if call.ok:
            number = as_number(call.value)
            if number is not None:
                return number
    return None


def _parse_rate(line: str) -> float | None:
    match = _NUMBER_RE.search(line)
    if not match:
        return None
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        return None


def read_io_rates(device: Any) -> tuple[float | None, float | None]:
    """
    Best-effort average input/output rates (EU/t) from the adapter.

    Falls back to scanning getSensorInformation() lines that mention
    "input" or "output".
    """
    eu_in = _first_number(device, INPUT_RATE_ACCESSORS)
    eu_out = _first_number(device, OUTPUT_RATE_ACCESSORS)

    if eu_in is None or eu_out is None:
        call = call_accessor(device, "getSensorInformation")
        if call.ok and isinstance(call.value, (list, tuple)):
            for info in call.value:
                text = str(info)
                lowered = text.lower()
                if "input" in lowered and eu_in is None:
                    eu_in = _parse_rate(text)
                elif "output" in lowered and eu_out is None:
                    eu_out = _parse_rate(text)

    return eu_in, eu_out
