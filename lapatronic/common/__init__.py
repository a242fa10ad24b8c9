"""
Common Utilities

Shared modules used across all services:
- config.py - Configuration dataclasses and YAML loader
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- formatting.py - EU and duration formatting
"""

from .config import (
    ControllerConfig,
    DeviceSettings,
    SensorDeviceSettings,
    ActuatorDeviceSettings,
    SimulatedDeviceSettings,
    AccessorRegister,
    DeviceBackend,
    RegisterDataType,
    load_config,
    load_controller_config,
    validate_config,
)
from .exceptions import (
    LapatronicError,
    ConfigError,
    DeviceError,
    CommunicationError,
    WriteError,
    SensorError,
    SensorUnavailable,
    SensorReadFailed,
    NoRecognizedMethod,
    ZeroCapacity,
    ActuatorError,
    ActuatorUnavailable,
    ActuatorWriteFailed,
)
from .formatting import format_eu, format_duration
from .logging_setup import (
    setup_logging,
    get_service_logger,
    set_log_level,
    LogContext,
    log_energy_read,
    log_actuator_write,
    log_control_tick,
)

__all__ = [
    # Config
    "ControllerConfig",
    "DeviceSettings",
    "SensorDeviceSettings",
    "ActuatorDeviceSettings",
    "SimulatedDeviceSettings",
    "AccessorRegister",
    "DeviceBackend",
    "RegisterDataType",
    "load_config",
    "load_controller_config",
    "validate_config",
    # Exceptions
    "LapatronicError",
    "ConfigError",
    "DeviceError",
    "CommunicationError",
    "WriteError",
    "SensorError",
    "SensorUnavailable",
    "SensorReadFailed",
    "NoRecognizedMethod",
    "ZeroCapacity",
    "ActuatorError",
    "ActuatorUnavailable",
    "ActuatorWriteFailed",
    # Formatting
    "format_eu",
    "format_duration",
    # Logging
    "setup_logging",
    "get_service_logger",
    "set_log_level",
    "LogContext",
    "log_energy_read",
    "log_actuator_write",
    "log_control_tick",
]
