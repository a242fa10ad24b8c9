"""
Energy History

Bounded, time-ordered log of energy readings used for rate estimation.
The buffer is capped both by age (history_duration) and by count
(max_history_size), so a clock jump cannot make it grow without bound.
"""

from collections import deque
from dataclasses import dataclass

from lapatronic.common.logging_setup import get_service_logger

logger = get_service_logger("telemetry.history")

# Size used by the emergency trim path under memory pressure
EMERGENCY_HISTORY_SIZE = 10


@dataclass(frozen=True)
class Reading:
    """One successful energy reading"""
    timestamp: float       # monotonic seconds
    current_energy: float
    max_energy: float


class HistoryBuffer:
    """
    Ordered log of Reading, oldest first.

    Invariants after every append:
    - len(buffer) <= max_history_size
    - every entry but the newest is at most history_duration older
      than the newest
    """

    def __init__(self, history_duration: float, max_history_size: int):
        if history_duration <= 0:
            raise ValueError("history_duration must be positive")
        if max_history_size <= 0:
            raise ValueError("max_history_size must be positive")

        self.history_duration = history_duration
        self.max_history_size = max_history_size
        self._entries: deque[Reading] = deque()

    def append(self, reading: Reading) -> None:
        """Add the newest reading and evict by age, then by count"""
        if self._entries and reading.timestamp < self._entries[-1].timestamp:
            raise ValueError(
                f"Reading at {reading.timestamp} is older than newest entry "
                f"at {self._entries[-1].timestamp}"
            )

        self._entries.append(reading)

        # Entries are time-ordered, stop at the first one still fresh
        cutoff = reading.timestamp - self.history_duration
        while self._entries and self._entries[0].timestamp < cutoff:
            self._entries.popleft()

        while len(self._entries) > self.max_history_size:
            self._entries.popleft()

    def trim(self, max_entries: int = EMERGENCY_HISTORY_SIZE) -> int:
        """
        Emergency trim: keep only the newest max_entries readings.

        Returns:
            Number of entries removed
        """
        removed = 0
        while len(self._entries) > max(0, max_entries):
            self._entries.popleft()
            removed += 1

        if removed:
            logger.warning(
                f"Emergency history trim removed {removed} entries",
                extra={"removed": removed, "kept": len(self._entries)},
            )
        return removed

    def entries(self) -> list[Reading]:
        """Snapshot of the buffer, oldest first"""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
