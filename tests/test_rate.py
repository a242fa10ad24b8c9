"""Tests for rate estimation and ballpark quantization."""

import math

import pytest

from lapatronic.services.telemetry.history import HistoryBuffer, Reading
from lapatronic.services.telemetry.rate import (
    RateEstimate,
    RateEstimator,
    RateStatus,
    ballpark,
    time_estimates,
)


def make_buffer(points, duration=1000.0, size=64):
    buffer = HistoryBuffer(duration, size)
    for t, energy in points:
        buffer.append(Reading(timestamp=t, current_energy=energy, max_energy=10_000.0))
    return buffer


@pytest.fixture()
def estimator():
    return RateEstimator(5, target_rate_window=10.0, min_elapsed_gate=3.0)


class TestInstantaneous:
    def test_empty_and_single_entry_insufficient_data(self, estimator):
        assert estimator.instantaneous(make_buffer([])).status == RateStatus.INSUFFICIENT_DATA
        single = estimator.instantaneous(make_buffer([(0, 100.0)]))
        assert single.status == RateStatus.INSUFFICIENT_DATA
        assert not single.ok

    def test_draining_over_ten_seconds(self, estimator):
        estimate = estimator.instantaneous(make_buffer([(0, 1000.0), (10, 500.0)]))
        assert estimate.ok
        assert estimate.rate == pytest.approx(-50.0)

    def test_picks_reference_closest_to_target_window(self, estimator):
        buffer = make_buffer([(0, 0.0), (4, 400.0), (8, 800.0), (12, 1400.0), (18, 2000.0)])
        estimate = estimator.instantaneous(buffer)
        # Reference is t=8 (elapsed 10)
        assert estimate.rate == pytest.approx((2000.0 - 800.0) / 10)

    def test_entries_inside_gate_are_skipped(self, estimator):
        buffer = make_buffer([(0, 0.0), (9, 900.0), (11, 1500.0)])
        estimate = estimator.instantaneous(buffer)
        # t=9 is only 2s old, so t=0 is the reference
        assert estimate.rate == pytest.approx(1500.0 / 11)

    def test_falls_back_to_oldest_when_all_inside_gate(self, estimator):
        estimate = estimator.instantaneous(make_buffer([(0, 100.0), (1, 300.0)]))
        assert estimate.ok
        assert estimate.rate == pytest.approx(200.0)

    def test_zero_elapsed_is_insufficient_time(self, estimator):
        estimate = estimator.instantaneous(make_buffer([(5, 100.0), (5, 200.0)]))
        assert estimate.status == RateStatus.INSUFFICIENT_TIME
        assert not estimate.ok


class TestSmoothing:
    def test_no_samples_insufficient_data(self, estimator):
        assert estimator.smoothed().status == RateStatus.INSUFFICIENT_DATA

    def test_linear_weights_newest_heaviest(self, estimator):
        for rate in (100.0, 200.0, 300.0):
            estimator.record(RateEstimate(rate, RateStatus.OK))
        # (1*100 + 2*200 + 3*300) / 6 = 233.3 -> 230
        assert estimator.smoothed().rate == 230.0

    def test_rejected_estimates_not_recorded(self, estimator):
        assert estimator.record(RateEstimate(0.0, RateStatus.INSUFFICIENT_TIME)) is False
        assert estimator.samples == []

    def test_fifo_is_bounded(self, estimator):
        for rate in range(10):
            estimator.record(RateEstimate(float(rate), RateStatus.OK))
        assert estimator.samples == [5.0, 6.0, 7.0, 8.0, 9.0]

    def test_update_records_and_smooths(self, estimator):
        smoothed = estimator.update(make_buffer([(0, 1000.0), (10, 500.0)]))
        assert smoothed.ok
        assert smoothed.rate == -50.0
        assert estimator.last_instantaneous.rate == pytest.approx(-50.0)

    def test_update_with_insufficient_data_keeps_fifo_empty(self, estimator):
        smoothed = estimator.update(make_buffer([(0, 1000.0)]))
        assert smoothed.status == RateStatus.INSUFFICIENT_DATA
        assert estimator.samples == []

    def test_trim_keeps_newest(self, estimator):
        for rate in (1.0, 2.0, 3.0):
            estimator.record(RateEstimate(rate, RateStatus.OK))
        estimator.trim(1)
        assert estimator.samples == [3.0]


class TestBallpark:
    @pytest.mark.parametrize("value,expected", [
        (0.0, 0.0),
        (-50.0, -50.0),
        (44.0, 40.0),
        (55.0, 60.0),
        (-55.0, -60.0),
        (1234.0, 1200.0),
        (56_789.0, 57_000.0),
        (123_456.0, 120_000.0),
        (4_567_890.0, 4_600_000.0),
        (12_345_678.0, 12_000_000.0),
        (-12_345_678.0, -12_000_000.0),
    ])
    def test_tiers(self, value, expected):
        assert ballpark(value) == expected

    @pytest.mark.parametrize("value", [
        999.6, 9_960.0, 99_600.0, 995_000.0, 9_960_000.0, -999.6, 3.7e15, 1e300,
    ])
    def test_idempotent(self, value):
        once = ballpark(value)
        assert ballpark(once) == once

    def test_rounding_into_next_tier_lands_on_boundary(self):
        assert ballpark(999.6) == 1000.0

    def test_non_finite_passes_through(self):
        assert ballpark(math.inf) == math.inf
        assert math.isnan(ballpark(math.nan))


class TestTimeEstimates:
    def test_draining(self):
        assert time_estimates(500.0, 1000.0, -200.0) == (2.5, None)

    def test_charging(self):
        assert time_estimates(500.0, 1000.0, 250.0) == (None, 2.0)

    def test_inside_noise_floor(self):
        assert time_estimates(500.0, 1000.0, 50.0) == (None, None)
        assert time_estimates(500.0, 1000.0, -100.0) == (None, None)
