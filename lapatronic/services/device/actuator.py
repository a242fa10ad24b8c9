"""
Actuator Driver

Applies an ON/OFF command to every channel of a redstone-style output
device through setOutput(channel, level).

Every channel is written on every apply, even after a failure, so as
many channels as possible reach the target level. Any failed channel
fails the whole apply; the caller keeps its previous state and simply
applies again on the next tick. Writes are idempotent, and channel
state is never read back.
"""

from dataclasses import dataclass, field
from typing import Any

from lapatronic.common.exceptions import (
    ActuatorError,
    ActuatorUnavailable,
    ActuatorWriteFailed,
)
from lapatronic.common.logging_setup import get_service_logger, log_actuator_write
from lapatronic.services.control.hysteresis import Command

logger = get_service_logger("device.actuator")

CHANNEL_COUNT = 6
LEVEL_ON = 15
LEVEL_OFF = 0


@dataclass
class ApplyResult:
    """Result of an apply operation"""
    command: Command
    success: bool
    level: int = LEVEL_OFF
    failed_channels: dict[int, str] = field(default_factory=dict)
    error: ActuatorError | None = None

    def to_dict(self) -> dict:
        return {
            "command": self.command.value,
            "success": self.success,
            "level": self.level,
            "failed_channels": {str(k): v for k, v in self.failed_channels.items()},
            "error": str(self.error) if self.error else None,
        }


def command_level(command: Command) -> int:
    return LEVEL_ON if command == Command.ON else LEVEL_OFF


class ActuatorDriver:
    """Sets all channels of the output device to the commanded level"""

    def __init__(self, device: Any, channel_count: int = CHANNEL_COUNT):
        self.device = device
        self.channel_count = channel_count
        self.last_result: ApplyResult | None = None

    def apply(self, command: Command) -> ApplyResult:
        """
        Write the command level to every channel.

        Returns:
            ApplyResult; success only if every channel write succeeded
        """
        level = command_level(command)
        set_output = getattr(self.device, "setOutput", None) if self.device is not None else None

        if set_output is None or not callable(set_output):
            error = ActuatorUnavailable("No redstone output device configured")
            logger.error(str(error))
            self.last_result = ApplyResult(command=command, success=False, level=level, error=error)
            return self.last_result

        failed: dict[int, str] = {}
        for channel in range(self.channel_count):
            try:
                set_output(channel, level)
            except Exception as e:
                failed[channel] = f"{type(e).__name__}: {e}"
                log_actuator_write(logger, channel, level, success=False, error=failed[channel])
            else:
                log_actuator_write(logger, channel, level)

        if failed:
            error = ActuatorWriteFailed(failed, level)
            logger.error(
                str(error),
                extra={"command": command.value, "failed_channels": sorted(failed)},
            )
            self.last_result = ApplyResult(
                command=command,
                success=False,
                level=level,
                failed_channels=failed,
                error=error,
            )
            return self.last_result

        logger.info(
            f"Redstone signal {'ENABLED' if command == Command.ON else 'DISABLED'} "
            f"(strength: {level})",
            extra={"command": command.value, "level": level},
        )
        self.last_result = ApplyResult(command=command, success=True, level=level)
        return self.last_result
