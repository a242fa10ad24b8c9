"""Energy history and rate estimation"""

from .history import HistoryBuffer, Reading, EMERGENCY_HISTORY_SIZE
from .rate import (
    RateEstimator,
    RateEstimate,
    RateStatus,
    ballpark,
    time_estimates,
)

__all__ = [
    "HistoryBuffer",
    "Reading",
    "EMERGENCY_HISTORY_SIZE",
    "RateEstimator",
    "RateEstimate",
    "RateStatus",
    "ballpark",
    "time_estimates",
]
