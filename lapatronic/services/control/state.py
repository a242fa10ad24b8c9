"""
Control State Dataclasses

Data structures describing the outcome of a control tick.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class TickState:
    """Complete state after one control tick"""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tick: int = 0

    # Sensor
    percent: float = 0.0
    reading_kind: str = "sensor_unavailable"
    strategy: str | None = None
    current_energy: float | None = None
    max_energy: float | None = None

    # Rates (informational)
    instantaneous_rate: float | None = None
    smoothed_rate: float | None = None
    rate_status: str = "insufficient data"
    time_to_empty_s: float | None = None
    time_to_full_s: float | None = None

    # Output
    active: bool = False
    command: str | None = None
    write_success: bool = True
    write_error: str | None = None

    # Execution
    history_size: int = 0
    execution_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and the status endpoint"""
        return {
            "timestamp": self.timestamp.isoformat(),
            "tick": self.tick,
            "percent": self.percent,
            "reading_kind": self.reading_kind,
            "strategy": self.strategy,
            "current_energy": self.current_energy,
            "max_energy": self.max_energy,
            "instantaneous_rate": self.instantaneous_rate,
            "smoothed_rate": self.smoothed_rate,
            "rate_status": self.rate_status,
            "time_to_empty_s": self.time_to_empty_s,
            "time_to_full_s": self.time_to_full_s,
            "active": self.active,
            "command": self.command,
            "write_success": self.write_success,
            "write_error": self.write_error,
            "history_size": self.history_size,
            "execution_time_ms": self.execution_time_ms,
        }
