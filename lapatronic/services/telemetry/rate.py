"""
Rate Estimation

Instantaneous and smoothed EU/s rate of change derived from the energy
history. The rates are informational (status line, status endpoint,
time estimates) and never drive the output decision.

Instantaneous rate:
    reference = entry closest to target_rate_window seconds before the
                newest one, among entries at least min_elapsed_gate old
                (falls back to the oldest entry)
    rate = (newest.current_energy - reference.current_energy) / elapsed

Smoothed rate:
    linearly weighted mean of the last rate_history_size accepted rates
    (oldest weight 1, newest weight N), ballpark-quantized
"""

import math
from collections import deque
from dataclasses import dataclass
from enum import Enum

from .history import HistoryBuffer

# (upper bound of |rate|, rounding granularity)
BALLPARK_TIERS: list[tuple[float, float]] = [
    (1_000.0, 10.0),
    (10_000.0, 100.0),
    (100_000.0, 1_000.0),
    (1_000_000.0, 10_000.0),
    (10_000_000.0, 100_000.0),
]
BALLPARK_TOP_GRANULARITY = 1_000_000.0

# Rates within +/- this many EU/s are treated as noise for time estimates
RATE_NOISE_FLOOR = 100.0


class RateStatus(str, Enum):
    OK = "ok"
    INSUFFICIENT_DATA = "insufficient data"
    INSUFFICIENT_TIME = "insufficient time"


@dataclass(frozen=True)
class RateEstimate:
    rate: float
    status: RateStatus

    @property
    def ok(self) -> bool:
        return self.status == RateStatus.OK


def ballpark_granularity(value: float) -> float:
    magnitude = abs(value)
    for bound, granularity in BALLPARK_TIERS:
        if magnitude < bound:
            return granularity
    return BALLPARK_TOP_GRANULARITY


def ballpark(value: float) -> float:
    """
    Round a rate to a magnitude-dependent granularity, keeping the sign.

    <1k -> 10, <10k -> 100, <100k -> 1k, <1M -> 10k, <10M -> 100k, else 1M.
    Halves round away from zero. Idempotent: a value that rounds up into
    the next tier lands on the tier boundary, which is a multiple of the
    coarser granularity too.
    """
    if not math.isfinite(value):
        return value

    magnitude = abs(value)
    granularity = ballpark_granularity(value)

    # Float spacing coarser than the granularity: already as round as it gets
    if math.ulp(magnitude) * 2 >= granularity:
        return value

    if magnitude >= 2 ** 53:
        # Integer-valued float, round in exact integer arithmetic
        step = int(granularity)
        quantized = float(((int(magnitude) + step // 2) // step) * step)
    else:
        quantized = math.floor(magnitude / granularity + 0.5) * granularity

    return math.copysign(quantized, value)


def time_estimates(
    current_energy: float,
    max_energy: float,
    rate: float,
    noise_floor: float = RATE_NOISE_FLOOR,
) -> tuple[float | None, float | None]:
    """
    Seconds until empty (draining) or until full (charging).

    Returns:
        (time_to_empty, time_to_full); both None inside the noise floor
    """
    time_to_empty = None
    time_to_full = None

    if rate < -noise_floor:
        time_to_empty = current_energy / -rate
    elif rate > noise_floor:
        time_to_full = max(0.0, max_energy - current_energy) / rate

    return time_to_empty, time_to_full


class RateEstimator:
    """Windowed rate estimator with a weighted smoothing FIFO"""

    def __init__(
        self,
        rate_history_size: int,
        target_rate_window: float = 10.0,
        min_elapsed_gate: float = 3.0,
    ):
        if rate_history_size <= 0:
            raise ValueError("rate_history_size must be positive")

        self.target_rate_window = target_rate_window
        self.min_elapsed_gate = min_elapsed_gate
        self._samples: deque[float] = deque(maxlen=rate_history_size)
        self._last_instantaneous = RateEstimate(0.0, RateStatus.INSUFFICIENT_DATA)

    def instantaneous(self, buffer: HistoryBuffer, now: float | None = None) -> RateEstimate:
        """
        Rate between the newest entry and the reference entry.

        `now` is accepted for callers that track wall time; elapsed time
        is always measured between readings.
        """
        entries = buffer.entries()
        if len(entries) < 2:
            return RateEstimate(0.0, RateStatus.INSUFFICIENT_DATA)

        newest = entries[-1]
        reference = None
        best_distance = math.inf

        for entry in entries[:-1]:
            elapsed = newest.timestamp - entry.timestamp
            if elapsed < self.min_elapsed_gate:
                continue
            distance = abs(elapsed - self.target_rate_window)
            if distance < best_distance:
                best_distance = distance
                reference = entry

        if reference is None:
            reference = entries[0]

        elapsed = newest.timestamp - reference.timestamp
        if elapsed <= 0:
            return RateEstimate(0.0, RateStatus.INSUFFICIENT_TIME)

        rate = (newest.current_energy - reference.current_energy) / elapsed
        return RateEstimate(rate, RateStatus.OK)

    def record(self, estimate: RateEstimate) -> bool:
        """Push an accepted estimate into the smoothing FIFO"""
        if not estimate.ok:
            return False
        self._samples.append(estimate.rate)
        return True

    def smoothed(self) -> RateEstimate:
        """Linearly weighted, ballpark-quantized mean of accepted rates"""
        if not self._samples:
            return RateEstimate(0.0, RateStatus.INSUFFICIENT_DATA)

        weighted_sum = 0.0
        weight_total = 0
        for weight, rate in enumerate(self._samples, start=1):
            weighted_sum += weight * rate
            weight_total += weight

        return RateEstimate(ballpark(weighted_sum / weight_total), RateStatus.OK)

    def update(self, buffer: HistoryBuffer) -> RateEstimate:
        """Compute the instantaneous rate, record it, return the smoothed rate"""
        self._last_instantaneous = self.instantaneous(buffer)
        self.record(self._last_instantaneous)
        return self.smoothed()

    def trim(self, keep: int = 1) -> None:
        """Emergency trim of the smoothing FIFO to its newest samples"""
        while len(self._samples) > max(0, keep):
            self._samples.popleft()

    @property
    def last_instantaneous(self) -> RateEstimate:
        return self._last_instantaneous

    @property
    def samples(self) -> list[float]:
        return list(self._samples)
