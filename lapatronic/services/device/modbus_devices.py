"""
Modbus Devices

Blocking Modbus TCP backends for the energy adapter and the redstone
output. The control loop calls devices synchronously, so these use the
synchronous pymodbus client; its socket timeout is the only timeout
applied to a device call, and a timed-out write raises like any other
failed write.

ModbusEnergyAdapter exposes the configured accessor names (for example
getEUStored) as zero-argument methods backed by registers.
ModbusRedstoneIO.setOutput(channel, level) writes base_address + channel.
"""

import math
import struct
from typing import Any, Callable

from pymodbus.client import ModbusTcpClient
from pymodbus.exceptions import ModbusException

from lapatronic.common.config import (
    ActuatorDeviceSettings,
    RegisterDataType,
    SensorDeviceSettings,
)
from lapatronic.common.exceptions import CommunicationError, DeviceError, WriteError
from lapatronic.common.logging_setup import get_service_logger

logger = get_service_logger("device.modbus")

REGISTER_COUNTS = {
    RegisterDataType.UINT16: 1,
    RegisterDataType.INT16: 1,
    RegisterDataType.UINT32: 2,
    RegisterDataType.INT32: 2,
    RegisterDataType.FLOAT32: 2,
    RegisterDataType.FLOAT64: 4,
}


def convert_registers(registers: list[int], datatype: RegisterDataType) -> float | int | None:
    """Convert raw big-endian registers to a typed value"""
    if not registers:
        return None

    try:
        if datatype == RegisterDataType.UINT16:
            return registers[0]

        elif datatype == RegisterDataType.INT16:
            value = registers[0]
            if value >= 0x8000:
                value -= 0x10000
            return value

        elif datatype == RegisterDataType.UINT32:
            if len(registers) < 2:
                return None
            # Big-endian: high word first
            return (registers[0] << 16) | registers[1]

        elif datatype == RegisterDataType.INT32:
            if len(registers) < 2:
                return None
            value = (registers[0] << 16) | registers[1]
            if value >= 0x80000000:
                value -= 0x100000000
            return value

        elif datatype == RegisterDataType.FLOAT32:
            if len(registers) < 2:
                return None
            packed = struct.pack(">HH", registers[0], registers[1])
            value = struct.unpack(">f", packed)[0]
            if math.isnan(value) or math.isinf(value):
                return None
            return value

        elif datatype == RegisterDataType.FLOAT64:
            if len(registers) < 4:
                return None
            packed = struct.pack(">HHHH", *registers[:4])
            value = struct.unpack(">d", packed)[0]
            if math.isnan(value) or math.isinf(value):
                return None
            return value

        return registers[0]

    except (struct.error, IndexError) as e:
        logger.warning(f"Error converting registers: {e}")
        return None


class ModbusConnection:
    """
    Blocking Modbus TCP connection to one device.

    Reconnects lazily before each request.
    """

    def __init__(
        self,
        host: str,
        port: int = 502,
        timeout: float = 3.0,
        client_factory: Callable[..., Any] = ModbusTcpClient,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._client_factory = client_factory
        self._client: Any = None

    @property
    def connected(self) -> bool:
        return self._client is not None and bool(self._client.connected)

    def connect(self) -> bool:
        """Establish connection to the Modbus server"""
        if self._client is None:
            self._client = self._client_factory(
                host=self.host,
                port=self.port,
                timeout=self.timeout,
            )
        try:
            ok = bool(self._client.connect())
        except Exception as e:
            logger.error(f"Connection error to {self.host}:{self.port}: {e}")
            return False

        if ok:
            logger.debug(f"Connected to Modbus device at {self.host}:{self.port}")
        else:
            logger.warning(f"Failed to connect to Modbus device at {self.host}:{self.port}")
        return ok

    def close(self) -> None:
        """Close the connection"""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug(f"Disconnected from {self.host}:{self.port}")

    def _ensure_connected(self) -> None:
        if self.connected:
            return
        if not self.connect():
            raise CommunicationError(
                f"Not connected to {self.host}:{self.port}",
                host=self.host,
                port=self.port,
            )

    def read_registers(
        self,
        address: int,
        count: int,
        slave_id: int = 1,
        register_type: str = "holding",
    ) -> list[int]:
        """Read holding or input registers"""
        self._ensure_connected()

        try:
            if register_type == "input":
                response = self._client.read_input_registers(
                    address, count=count, device_id=slave_id
                )
            else:
                response = self._client.read_holding_registers(
                    address, count=count, device_id=slave_id
                )
        except ModbusException as e:
            raise DeviceError(f"Modbus exception reading {address}: {e}") from e

        if response.isError():
            raise DeviceError(f"Modbus error reading {address}: {response}")

        return list(response.registers)

    def write_register(self, address: int, value: int, slave_id: int = 1) -> None:
        """Write a single holding register"""
        self._ensure_connected()

        try:
            response = self._client.write_register(address, value, device_id=slave_id)
        except ModbusException as e:
            raise WriteError(
                f"Modbus exception: {e}", register=address, value=value
            ) from e

        if response.isError():
            raise WriteError(f"Write failed: {response}", register=address, value=value)

        logger.debug(
            f"Write successful: {self.host}:{self.port} slave={slave_id} "
            f"reg={address} value={value}"
        )


class ModbusEnergyAdapter:
    """Energy adapter whose accessors read configured registers"""

    def __init__(self, settings: SensorDeviceSettings, connection: ModbusConnection | None = None):
        self.settings = settings
        self.connection = connection or ModbusConnection(
            settings.host, settings.port, settings.timeout
        )
        self.type = "modbus_energy_adapter"

    def read_accessor(self, name: str) -> float | int:
        register = self.settings.accessors[name]
        count = REGISTER_COUNTS.get(register.datatype, 1)
        raw = self.connection.read_registers(
            register.address,
            count,
            slave_id=self.settings.slave_id,
            register_type=register.type,
        )
        value = convert_registers(raw, register.datatype)
        if value is None:
            raise DeviceError(f"Could not decode {name} from registers {raw}")
        if register.scale != 1.0:
            return value * register.scale
        return value

    def _make_accessor(self, name: str) -> Callable[[], float | int]:
        def accessor():
            return self.read_accessor(name)
        accessor.__name__ = name
        return accessor

    def __getattr__(self, name: str) -> Any:
        # Only reached for names not found normally
        settings = self.__dict__.get("settings")
        if settings is not None and name in settings.accessors:
            return self._make_accessor(name)
        raise AttributeError(name)

    def __dir__(self):
        return sorted(set(super().__dir__()) | set(self.settings.accessors))

    def close(self) -> None:
        self.connection.close()


class ModbusRedstoneIO:
    """Redstone-style output: one holding register per channel"""

    def __init__(self, settings: ActuatorDeviceSettings, connection: ModbusConnection | None = None):
        self.settings = settings
        self.connection = connection or ModbusConnection(
            settings.host, settings.port, settings.timeout
        )
        self.type = "modbus_redstone"

    def setOutput(self, channel: int, level: int) -> None:
        if not 0 <= channel <= 5:
            raise ValueError(f"channel {channel} outside 0..5")
        if not 0 <= level <= 15:
            raise ValueError(f"level {level} outside 0..15")
        self.connection.write_register(
            self.settings.base_address + channel,
            level,
            slave_id=self.settings.slave_id,
        )

    def close(self) -> None:
        self.connection.close()
