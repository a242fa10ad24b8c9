"""
Energy Sensor Reader

Reads stored and maximum energy from an opaque energy adapter by trying
the known telemetry strategies in priority order, and turns the result
into a normalized charge level.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from lapatronic.common.exceptions import (
    NoRecognizedMethod,
    SensorError,
    SensorReadFailed,
    SensorUnavailable,
    ZeroCapacity,
)
from lapatronic.common.logging_setup import get_service_logger, log_energy_read
from lapatronic.services.telemetry.history import Reading
from .strategies import TELEMETRY_STRATEGIES, ProbeResult, TelemetryStrategy

logger = get_service_logger("sensor.reader")

# Accessor name prefixes worth showing when nothing matched
CANDIDATE_PREFIXES = ("get", "set", "is")


class ReadingKind(str, Enum):
    """Outcome of a sensor read"""
    OK = "ok"
    SENSOR_UNAVAILABLE = "sensor_unavailable"
    SENSOR_READ_FAILED = "sensor_read_failed"
    NO_RECOGNIZED_METHOD = "no_recognized_method"
    ZERO_CAPACITY = "zero_capacity"


# Exception class logged for each non-OK kind
KIND_ERRORS: dict[ReadingKind, type[SensorError]] = {
    ReadingKind.SENSOR_UNAVAILABLE: SensorUnavailable,
    ReadingKind.SENSOR_READ_FAILED: SensorReadFailed,
    ReadingKind.NO_RECOGNIZED_METHOD: NoRecognizedMethod,
    ReadingKind.ZERO_CAPACITY: ZeroCapacity,
}


@dataclass
class SensorReading:
    """Result of SensorReader.read()"""
    percent: float
    kind: ReadingKind
    current_energy: float | None = None
    max_energy: float | None = None
    strategy: str | None = None
    reading: Reading | None = None
    detail: str | None = None
    candidates: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.kind == ReadingKind.OK

    def to_error(self) -> SensorError | None:
        """The taxonomy exception matching this reading, for logging"""
        error_cls = KIND_ERRORS.get(self.kind)
        if error_cls is None:
            return None
        message = self.detail or self.kind.value
        if error_cls is NoRecognizedMethod:
            return NoRecognizedMethod(message, candidates=list(self.candidates))
        return error_cls(message)


def candidate_accessors(device: Any) -> list[str]:
    """
    Names on the device that look like accessors (get*/set*/is*).

    Only names are collected; nothing is called.
    """
    names = []
    for name in dir(device):
        if name.startswith("_"):
            continue
        if name.startswith(CANDIDATE_PREFIXES):
            names.append(name)
    return sorted(names)


class SensorReader:
    """
    Probes an energy adapter for one of the known telemetry shapes.

    Strategies never mix: current and max always come from the same
    strategy. A strategy with a failing or absent accessor is skipped.
    """

    def __init__(
        self,
        strategies: list[TelemetryStrategy] | None = None,
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        self.strategies = list(strategies) if strategies is not None else list(TELEMETRY_STRATEGIES)
        self.clock = clock
        self.debug = debug

        # Diagnostics from the most recent read
        self.last_candidates: list[str] = []
        self.last_errors: dict[str, dict[str, str]] = {}
        self.last_strategy: str | None = None

    def read(self, device: Any) -> SensorReading:
        """Read the energy level (0.0 to 1.0) from the device"""
        self.last_candidates = []
        self.last_errors = {}
        self.last_strategy = None

        if device is None:
            return SensorReading(
                percent=0.0,
                kind=ReadingKind.SENSOR_UNAVAILABLE,
                detail="No energy sensor configured",
            )

        try:
            probe = self._first_working_strategy(device)
        except Exception as e:
            logger.error(f"Energy probe failed: {e}", exc_info=True)
            return SensorReading(
                percent=0.0,
                kind=ReadingKind.SENSOR_READ_FAILED,
                detail=f"{type(e).__name__}: {e}",
            )

        if probe is None:
            try:
                self.last_candidates = candidate_accessors(device)
            except Exception as e:
                logger.debug(f"Could not list accessors: {e}")
            logger.warning(
                "No recognized energy methods found on energy adapter",
                extra={
                    "candidates": self.last_candidates,
                    "errors": self.last_errors,
                },
            )
            return SensorReading(
                percent=0.0,
                kind=ReadingKind.NO_RECOGNIZED_METHOD,
                detail=f"Tried {len(self.strategies)} strategies",
                candidates=list(self.last_candidates),
            )

        current_energy, max_energy = probe.values
        self.last_strategy = probe.strategy_id
        log_energy_read(logger, probe.strategy_id, current_energy, max_energy)

        if max_energy == 0:
            logger.warning(
                "Maximum energy capacity is 0",
                extra={"strategy": probe.strategy_id},
            )
            return SensorReading(
                percent=0.0,
                kind=ReadingKind.ZERO_CAPACITY,
                current_energy=current_energy,
                max_energy=max_energy,
                strategy=probe.strategy_id,
                detail=f"{probe.strategy_id} reports zero capacity",
            )

        percent = current_energy / max_energy
        if self.debug:
            logger.debug(f"Calculated percentage: {percent:.3f} ({percent * 100:.1f}%)")

        return SensorReading(
            percent=percent,
            kind=ReadingKind.OK,
            current_energy=current_energy,
            max_energy=max_energy,
            strategy=probe.strategy_id,
            reading=Reading(
                timestamp=self.clock(),
                current_energy=current_energy,
                max_energy=max_energy,
            ),
        )

    def _first_working_strategy(self, device: Any) -> ProbeResult | None:
        for strategy in self.strategies:
            probe = strategy.probe(device)

            if self.debug:
                if probe.ok:
                    logger.debug(
                        f"Strategy {strategy.strategy_id}: "
                        f"current={probe.values[0]}, max={probe.values[1]}"
                    )
                else:
                    logger.debug(f"Strategy {strategy.strategy_id} failed: {probe.errors}")

            if probe.ok:
                return probe

            # Absent accessors are expected, only record real failures
            failures = {
                name: error for name, error in probe.errors.items()
                if name not in probe.missing
            }
            if failures:
                self.last_errors[strategy.strategy_id] = failures

        return None
