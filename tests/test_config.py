"""Tests for configuration loading and validation."""

import pytest
import yaml

from lapatronic.common import config as config_module
from lapatronic.common.config import (
    ControllerConfig,
    DeviceBackend,
    RegisterDataType,
    load_config,
    load_controller_config,
    validate_config,
)
from lapatronic.common.exceptions import ConfigError


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


def test_defaults_are_valid():
    config = ControllerConfig()
    assert validate_config(config) == []
    assert config.low_threshold == 0.20
    assert config.high_threshold == 0.90
    assert config.check_interval == 5
    assert config.history_duration == 30.0
    assert config.rate_history_size == 5


def test_load_full_yaml(tmp_path):
    path = write_yaml(tmp_path / "config.yaml", {
        "control": {"low_threshold": 0.1, "high_threshold": 0.8, "check_interval": 2},
        "telemetry": {"history_duration": 60, "max_history_size": 32, "rate_history_size": 3},
        "maintenance": {"memory_pressure_pct": 85},
        "status": {"port": 8085},
        "devices": {
            "backend": "modbus",
            "sensor": {
                "host": "10.0.0.5",
                "slave_id": 3,
                "accessors": {
                    "getEUStored": {"address": 100, "datatype": "float64"},
                    "getEUCapacity": {"address": 104, "type": "input", "scale": 10},
                },
            },
            "actuator": {"host": "10.0.0.6", "base_address": 40},
        },
    })

    config = load_config(path)

    assert config.low_threshold == 0.1
    assert config.high_threshold == 0.8
    assert config.check_interval == 2
    assert config.history_duration == 60.0
    assert config.max_history_size == 32
    assert config.memory_pressure_pct == 85.0
    assert config.status_port == 8085
    assert config.source_path == str(path)

    sensor = config.devices.sensor
    assert config.devices.backend == DeviceBackend.MODBUS
    assert sensor.host == "10.0.0.5"
    assert sensor.slave_id == 3
    assert sensor.accessors["getEUStored"].datatype == RegisterDataType.FLOAT64
    assert sensor.accessors["getEUCapacity"].type == "input"
    assert sensor.accessors["getEUCapacity"].scale == 10.0
    assert config.devices.actuator.base_address == 40


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    config = load_config(path)
    assert config.low_threshold == 0.20


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.yaml")


def test_no_file_in_search_paths(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [tmp_path / "nope.yaml"])
    config = load_config()
    assert config.source_path == ""
    assert config.devices.backend == DeviceBackend.MODBUS


def test_search_path_found(tmp_path, monkeypatch):
    path = write_yaml(tmp_path / "config.yaml", {"control": {"check_interval": 9}})
    monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [tmp_path / "a.yaml", path])
    assert load_config().check_interval == 9


def test_malformed_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("control: [unclosed")
    with pytest.raises(ConfigError):
        load_config(path)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)


def test_thresholds_out_of_order(tmp_path):
    path = write_yaml(tmp_path / "config.yaml", {
        "control": {"low_threshold": 0.9, "high_threshold": 0.2},
    })
    with pytest.raises(ConfigError, match="lower than"):
        load_config(path)


@pytest.mark.parametrize("overrides,message", [
    ({"low_threshold": -0.1}, "low_threshold"),
    ({"high_threshold": 1.5}, "high_threshold"),
    ({"check_interval": 0}, "check_interval"),
    ({"history_duration": 0}, "history_duration"),
    ({"max_history_size": 0}, "max_history_size"),
    ({"rate_history_size": 0}, "rate_history_size"),
    ({"memory_pressure_pct": 0}, "memory_pressure_pct"),
    ({"status_port": -1}, "port"),
])
def test_validation_errors(overrides, message):
    errors = validate_config(ControllerConfig(**overrides))
    assert any(message in e for e in errors)


def test_bad_value_type():
    with pytest.raises(ConfigError):
        load_controller_config({"control": {"check_interval": "often"}})


def test_unknown_backend():
    with pytest.raises(ConfigError):
        load_controller_config({"devices": {"backend": "serial"}})


def test_accessor_without_address():
    with pytest.raises(ConfigError, match="address"):
        load_controller_config({"devices": {"sensor": {"accessors": {"getEUStored": {}}}}})


def test_simulated_failing_channels_validated():
    config = load_controller_config({
        "devices": {"backend": "simulated", "simulated": {"failing_channels": [7]}},
    })
    assert any("outside 0..5" in e for e in validate_config(config))


@pytest.mark.parametrize("data", [
    {"control": [1, 2]},
    {"telemetry": 30},
    {"devices": "modbus"},
    {"devices": {"sensor": ["getEUStored"]}},
    {"devices": {"sensor": {"accessors": "getEUStored"}}},
])
def test_section_must_be_mapping(data):
    with pytest.raises(ConfigError, match="must be a mapping"):
        load_controller_config(data)


def test_scalar_section_in_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("control: 5\n")
    with pytest.raises(ConfigError, match="'control'"):
        load_config(path)


@pytest.mark.parametrize("data", [
    {"control": {"check_interval": 2.7}},
    {"telemetry": {"max_history_size": 10.5}},
    {"status": {"port": True}},
    {"devices": {"simulated": {"failing_channels": [1.5]}}},
])
def test_fractional_integers_rejected(data):
    with pytest.raises(ConfigError, match="must be an integer"):
        load_controller_config(data)


def test_whole_float_interval_accepted():
    assert load_controller_config({"control": {"check_interval": 3.0}}).check_interval == 3
