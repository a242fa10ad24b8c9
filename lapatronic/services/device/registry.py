"""
Device Registry

Builds the sensor/actuator device pair for the configured backend.
"""

from typing import Any

from lapatronic.common.config import ControllerConfig, DeviceBackend
from lapatronic.common.exceptions import ConfigError
from lapatronic.common.logging_setup import get_service_logger
from lapatronic.simulator import build_simulated_devices

logger = get_service_logger("device.registry")


def build_devices(config: ControllerConfig, backend: DeviceBackend | None = None) -> tuple[Any, Any]:
    """
    Create (sensor_device, actuator_device).

    Args:
        config: Controller configuration
        backend: Overrides config.devices.backend (used by --simulate)
    """
    backend = backend or config.devices.backend

    if backend == DeviceBackend.SIMULATED:
        return build_simulated_devices(config.devices.simulated)

    if backend == DeviceBackend.MODBUS:
        from .modbus_devices import ModbusEnergyAdapter, ModbusRedstoneIO

        if not config.devices.sensor.accessors:
            raise ConfigError("Modbus sensor needs at least one accessor register")

        sensor = ModbusEnergyAdapter(config.devices.sensor)
        actuator = ModbusRedstoneIO(config.devices.actuator)
        logger.info(
            f"Modbus devices: sensor {config.devices.sensor.host}:{config.devices.sensor.port} "
            f"({', '.join(sorted(config.devices.sensor.accessors))}), "
            f"actuator {config.devices.actuator.host}:{config.devices.actuator.port}"
        )
        return sensor, actuator

    raise ConfigError(f"Unknown device backend: {backend}")


def close_devices(*devices: Any) -> None:
    """Close devices that hold connections"""
    for device in devices:
        close = getattr(device, "close", None)
        if callable(close):
            try:
                close()
            except Exception as e:
                logger.warning(f"Error closing device: {e}")
