"""Tests for the troubleshooting helpers behind inspect and test-energy."""

from conftest import EUAdapter, UnknownAdapter
from lapatronic.services.sensor.diagnostics import (
    inspect_accessors,
    probe_all_strategies,
    read_io_rates,
)


class TwoShapeAdapter(EUAdapter):
    def tank(self):
        return {"amount": 10, "capacity": 0}


class InfoOnlyAdapter:
    def getSensorInformation(self):
        return ["Stored: 1,000 EU", "Input: 2,048 EU/t", "Output: 512.5 EU/t"]


class AverageAdapter:
    def getEUInputAverage(self):
        return 128

    def getEUOutputAverage(self):
        return 64.0


def test_probe_all_strategies_reports_every_strategy():
    reports = probe_all_strategies(TwoShapeAdapter(250.0, 1000.0))
    by_id = {r.strategy_id: r for r in reports}

    assert len(reports) == 6
    assert by_id["getEUStored/getEUCapacity"].working
    assert by_id["getEUStored/getEUCapacity"].percent == 0.25

    tank = by_id["tank()"]
    assert tank.available
    assert not tank.working
    assert "capacity" in tank.errors

    absent = by_id["getStored/getCapacity"]
    assert not absent.available
    assert not absent.working


def test_strategy_report_dict():
    report = probe_all_strategies(EUAdapter(500.0, 1000.0))[0]
    data = report.to_dict()
    assert data["strategy"] == "getEUStored/getEUCapacity"
    assert data["working"] is True
    assert data["percent"] == 0.5


def test_inspect_accessors_never_calls_setters():
    reports = {r.name: r for r in inspect_accessors(UnknownAdapter())}

    assert reports["getFoo"].ok
    assert reports["getFoo"].value == 1
    assert reports["isBaz"].value is True
    assert not reports["setBar"].ok
    assert reports["setBar"].error == "setter not called"


def test_read_io_rates_from_average_accessors():
    assert read_io_rates(AverageAdapter()) == (128.0, 64.0)


def test_read_io_rates_from_sensor_information():
    assert read_io_rates(InfoOnlyAdapter()) == (2048.0, 512.5)


def test_read_io_rates_unavailable():
    assert read_io_rates(EUAdapter()) == (None, None)
