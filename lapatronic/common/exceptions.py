"""
Custom Exception Classes for the Lapatronic Controller

Hierarchical exception structure for error handling across services.
Sensor and actuator errors are recoverable: the control loop logs them
and carries on with the next tick.
"""


class LapatronicError(Exception):
    """Base exception for all Lapatronic controller errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(LapatronicError):
    """Configuration-related errors"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class DeviceError(LapatronicError):
    """Device communication errors"""

    def __init__(
        self,
        message: str,
        device_name: str | None = None,
        recoverable: bool = True,
    ):
        self.device_name = device_name
        super().__init__(f"Device Error: {message}", recoverable)


class CommunicationError(DeviceError):
    """Modbus/network communication errors"""

    def __init__(
        self,
        message: str,
        device_name: str | None = None,
        host: str | None = None,
        port: int | None = None,
    ):
        self.host = host
        self.port = port
        super().__init__(message, device_name, recoverable=True)


class WriteError(DeviceError):
    """Register write failed errors"""

    def __init__(
        self,
        message: str,
        device_name: str | None = None,
        register: int | None = None,
        value: int | None = None,
    ):
        self.register = register
        self.value = value
        super().__init__(message, device_name, recoverable=True)


# Sensor taxonomy


class SensorError(LapatronicError):
    """Energy sensor errors (never fatal to the control loop)"""

    def __init__(self, message: str):
        super().__init__(f"Sensor Error: {message}", recoverable=True)


class SensorUnavailable(SensorError):
    """No sensor device configured"""


class SensorReadFailed(SensorError):
    """Probing the sensor failed unexpectedly"""


class NoRecognizedMethod(SensorError):
    """None of the known telemetry strategies worked"""

    def __init__(self, message: str, candidates: list[str] | None = None):
        self.candidates = candidates or []
        super().__init__(message)


class ZeroCapacity(SensorError):
    """Sensor reports a maximum capacity of zero"""


# Actuator taxonomy


class ActuatorError(LapatronicError):
    """Actuator errors (never fatal to the control loop)"""

    def __init__(self, message: str):
        super().__init__(f"Actuator Error: {message}", recoverable=True)


class ActuatorUnavailable(ActuatorError):
    """No actuator device configured"""


class ActuatorWriteFailed(ActuatorError):
    """One or more channel writes failed"""

    def __init__(self, failed_channels: dict[int, str], level: int):
        self.failed_channels = failed_channels
        self.level = level
        channels = ", ".join(str(c) for c in sorted(failed_channels))
        super().__init__(f"Failed to set level {level} on channel(s) {channels}")
