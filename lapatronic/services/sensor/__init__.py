"""Energy sensor probing and diagnostics"""

from .reader import SensorReader, SensorReading, ReadingKind, candidate_accessors
from .strategies import (
    TELEMETRY_STRATEGIES,
    TelemetryStrategy,
    AccessorPairStrategy,
    TankStrategy,
    TankInfoStrategy,
    AccessorResult,
    ProbeResult,
    call_accessor,
)

__all__ = [
    "SensorReader",
    "SensorReading",
    "ReadingKind",
    "candidate_accessors",
    "TELEMETRY_STRATEGIES",
    "TelemetryStrategy",
    "AccessorPairStrategy",
    "TankStrategy",
    "TankInfoStrategy",
    "AccessorResult",
    "ProbeResult",
    "call_accessor",
]
