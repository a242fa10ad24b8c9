"""
Hysteresis Controller

Two-state machine turning the energy level into an output command:

    Inactive --[percent <= low_threshold]--> Active    (ON)
    Active   --[percent >= high_threshold]--> Inactive (OFF)

Anything strictly between the thresholds is the deadband: no command.
The state only changes through commit(), which the control loop calls
after the actuator accepted the command, so a failed write is retried
on the next tick.
"""

from dataclasses import dataclass
from enum import Enum

from lapatronic.common.logging_setup import get_service_logger

logger = get_service_logger("control.hysteresis")


class Command(str, Enum):
    ON = "on"
    OFF = "off"


@dataclass
class ControllerState:
    active: bool = False

    def to_dict(self) -> dict:
        return {"active": self.active}


class HysteresisController:
    """Maps an energy level to ON/OFF with a deadband between thresholds"""

    def __init__(self, low_threshold: float, high_threshold: float):
        if not 0.0 <= low_threshold < high_threshold <= 1.0:
            raise ValueError(
                f"Thresholds must satisfy 0 <= low < high <= 1 "
                f"(got low={low_threshold}, high={high_threshold})"
            )
        self.low_threshold = low_threshold
        self.high_threshold = high_threshold
        self.state = ControllerState()

    @property
    def active(self) -> bool:
        return self.state.active

    def evaluate(self, percent: float) -> Command | None:
        """Command required for this level, or None to hold. Does not change state."""
        if not self.state.active and percent <= self.low_threshold:
            return Command.ON
        if self.state.active and percent >= self.high_threshold:
            return Command.OFF
        return None

    def commit(self, command: Command) -> None:
        """Record that the actuator now carries this command"""
        was_active = self.state.active
        self.state.active = command == Command.ON
        if was_active != self.state.active:
            logger.info(
                f"Output {'ACTIVATED' if self.state.active else 'DEACTIVATED'}",
                extra={"active": self.state.active},
            )

    def update(self, percent: float) -> Command | None:
        """evaluate() and commit() in one step"""
        command = self.evaluate(percent)
        if command is not None:
            self.commit(command)
        return command

    def reset(self) -> None:
        """Force the Inactive state"""
        self.state.active = False
