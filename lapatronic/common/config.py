"""
Configuration Dataclasses

Type-safe configuration structures for the controller, plus the YAML
loader and validator. Configuration is loaded once at startup and is
not modified afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError
from .logging_setup import get_service_logger

logger = get_service_logger("config")

CONFIG_SEARCH_PATHS = [
    Path("config.yaml"),
    Path("/etc/lapatronic/config.yaml"),
    Path.home() / ".config" / "lapatronic" / "config.yaml",
]


class DeviceBackend(str, Enum):
    """Where sensor and actuator devices come from"""
    MODBUS = "modbus"
    SIMULATED = "simulated"


class RegisterDataType(str, Enum):
    """Modbus register data types"""
    UINT16 = "uint16"
    INT16 = "int16"
    UINT32 = "uint32"
    INT32 = "int32"
    FLOAT32 = "float32"
    FLOAT64 = "float64"


@dataclass
class AccessorRegister:
    """Modbus register backing one sensor accessor (e.g. getEUStored)"""
    address: int
    type: str = "holding"  # holding, input
    datatype: RegisterDataType = RegisterDataType.UINT32
    scale: float = 1.0


@dataclass
class SensorDeviceSettings:
    """Modbus energy adapter settings"""
    host: str = "127.0.0.1"
    port: int = 502
    slave_id: int = 1
    timeout: float = 3.0
    accessors: dict[str, AccessorRegister] = field(default_factory=dict)


@dataclass
class ActuatorDeviceSettings:
    """Modbus redstone output settings"""
    host: str = "127.0.0.1"
    port: int = 502
    slave_id: int = 1
    timeout: float = 3.0
    base_address: int = 0  # channel N is written to base_address + N


@dataclass
class SimulatedDeviceSettings:
    """In-process virtual capacitor and redstone output"""
    capacity: float = 1_000_000_000.0
    initial_energy: float = 500_000_000.0
    load_eu_per_s: float = 2_000_000.0
    charge_eu_per_s: float = 6_000_000.0
    accessor_family: str = "gt_eu"
    failing_channels: list[int] = field(default_factory=list)


@dataclass
class DeviceSettings:
    """Device backend selection"""
    backend: DeviceBackend = DeviceBackend.MODBUS
    sensor: SensorDeviceSettings = field(default_factory=SensorDeviceSettings)
    actuator: ActuatorDeviceSettings = field(default_factory=ActuatorDeviceSettings)
    simulated: SimulatedDeviceSettings = field(default_factory=SimulatedDeviceSettings)


@dataclass
class ControllerConfig:
    """Complete controller configuration"""
    # Control
    low_threshold: float = 0.20     # enable output at or below 20%
    high_threshold: float = 0.90    # disable output at or above 90%
    check_interval: int = 5         # seconds between energy checks

    # Telemetry
    history_duration: float = 30.0
    max_history_size: int = 64
    rate_history_size: int = 5
    target_rate_window: float = 10.0
    min_elapsed_gate: float = 3.0

    # Maintenance
    memory_pressure_pct: float = 90.0

    # Status endpoint (0 = disabled)
    status_port: int = 0

    devices: DeviceSettings = field(default_factory=DeviceSettings)

    source_path: str = ""


def validate_config(config: ControllerConfig) -> list[str]:
    """
    Validate configuration ranges.

    Returns:
        List of error messages (empty when valid)
    """
    errors: list[str] = []

    if not 0.0 <= config.low_threshold <= 1.0:
        errors.append("low_threshold must be between 0 and 1")
    if not 0.0 <= config.high_threshold <= 1.0:
        errors.append("high_threshold must be between 0 and 1")
    if config.low_threshold >= config.high_threshold:
        errors.append("low_threshold must be lower than high_threshold")

    if config.check_interval < 1:
        errors.append("check_interval must be at least 1 second")
    if config.history_duration <= 0:
        errors.append("history_duration must be positive")
    if config.max_history_size <= 0:
        errors.append("max_history_size must be positive")
    if config.rate_history_size <= 0:
        errors.append("rate_history_size must be positive")
    if config.target_rate_window <= 0:
        errors.append("target_rate_window must be positive")
    if config.min_elapsed_gate < 0:
        errors.append("min_elapsed_gate cannot be negative")

    if not 0.0 < config.memory_pressure_pct <= 100.0:
        errors.append("memory_pressure_pct must be between 0 and 100")
    if config.status_port < 0:
        errors.append("status port cannot be negative")

    for channel in config.devices.simulated.failing_channels:
        if not 0 <= channel <= 5:
            errors.append(f"failing channel {channel} is outside 0..5")

    return errors


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def _as_int(value: Any, name: str) -> int:
    """Whole numbers only; 2.7 is rejected rather than truncated"""
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e
    if not number.is_integer():
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    return int(number)


def _load_accessors(data: dict[str, Any]) -> dict[str, AccessorRegister]:
    accessors = {}
    for name, reg in data.items():
        if not isinstance(reg, dict) or "address" not in reg:
            raise ConfigError(f"Accessor '{name}' needs a register address")
        accessors[name] = AccessorRegister(
            address=_as_int(reg["address"], f"{name}.address"),
            type=reg.get("type", "holding"),
            datatype=RegisterDataType(reg.get("datatype", "uint32")),
            scale=float(reg.get("scale", 1.0)),
        )
    return accessors


def load_controller_config(data: dict[str, Any]) -> ControllerConfig:
    """Load ControllerConfig from dictionary (e.g., parsed YAML)"""
    control = _section(data, "control")
    telemetry = _section(data, "telemetry")
    maintenance = _section(data, "maintenance")
    status = _section(data, "status")
    devices_data = _section(data, "devices")

    sensor_data = _section(devices_data, "sensor")
    actuator_data = _section(devices_data, "actuator")
    simulated_data = _section(devices_data, "simulated")

    failing = simulated_data.get("failing_channels") or []
    if not isinstance(failing, list):
        raise ConfigError("failing_channels must be a list")

    try:
        devices = DeviceSettings(
            backend=DeviceBackend(devices_data.get("backend", "modbus")),
            sensor=SensorDeviceSettings(
                host=sensor_data.get("host", "127.0.0.1"),
                port=_as_int(sensor_data.get("port", 502), "sensor.port"),
                slave_id=_as_int(sensor_data.get("slave_id", 1), "sensor.slave_id"),
                timeout=float(sensor_data.get("timeout", 3.0)),
                accessors=_load_accessors(_section(sensor_data, "accessors")),
            ),
            actuator=ActuatorDeviceSettings(
                host=actuator_data.get("host", "127.0.0.1"),
                port=_as_int(actuator_data.get("port", 502), "actuator.port"),
                slave_id=_as_int(actuator_data.get("slave_id", 1), "actuator.slave_id"),
                timeout=float(actuator_data.get("timeout", 3.0)),
                base_address=_as_int(actuator_data.get("base_address", 0), "actuator.base_address"),
            ),
            simulated=SimulatedDeviceSettings(
                capacity=float(simulated_data.get("capacity", 1_000_000_000.0)),
                initial_energy=float(simulated_data.get("initial_energy", 500_000_000.0)),
                load_eu_per_s=float(simulated_data.get("load_eu_per_s", 2_000_000.0)),
                charge_eu_per_s=float(simulated_data.get("charge_eu_per_s", 6_000_000.0)),
                accessor_family=simulated_data.get("accessor_family", "gt_eu"),
                failing_channels=[_as_int(c, "failing_channels") for c in failing],
            ),
        )

        return ControllerConfig(
            low_threshold=float(control.get("low_threshold", 0.20)),
            high_threshold=float(control.get("high_threshold", 0.90)),
            check_interval=_as_int(control.get("check_interval", 5), "check_interval"),
            history_duration=float(telemetry.get("history_duration", 30.0)),
            max_history_size=_as_int(telemetry.get("max_history_size", 64), "max_history_size"),
            rate_history_size=_as_int(telemetry.get("rate_history_size", 5), "rate_history_size"),
            target_rate_window=float(telemetry.get("target_rate_window", 10.0)),
            min_elapsed_gate=float(telemetry.get("min_elapsed_gate", 3.0)),
            memory_pressure_pct=float(maintenance.get("memory_pressure_pct", 90.0)),
            status_port=_as_int(status.get("port", 0), "status.port"),
            devices=devices,
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value: {e}") from e


def find_config_path() -> Path | None:
    """Return the first existing config file from the search paths"""
    for path in CONFIG_SEARCH_PATHS:
        if path.exists():
            return path
    return None


def load_config(config_path: str | Path | None = None) -> ControllerConfig:
    """
    Load and validate configuration from a YAML file.

    Args:
        config_path: Explicit path; when None the search paths are tried
            and built-in defaults are used if nothing is found.

    Raises:
        ConfigError: file unreadable, malformed, or out of range
    """
    if config_path is None:
        path = find_config_path()
        if path is None:
            searched = ", ".join(str(p) for p in CONFIG_SEARCH_PATHS)
            logger.warning(f"No config file found (searched: {searched}), using defaults")
            config = ControllerConfig()
            _raise_if_invalid(config)
            return config
    else:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    config = load_controller_config(data)
    config.source_path = str(path)
    _raise_if_invalid(config)

    logger.info(f"Loaded configuration from {path}")
    return config


def _raise_if_invalid(config: ControllerConfig) -> None:
    errors = validate_config(config)
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        raise ConfigError("; ".join(errors))
