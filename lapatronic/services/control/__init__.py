"""Hysteresis control and tick state"""

from .hysteresis import HysteresisController, ControllerState, Command
from .state import TickState

__all__ = [
    "HysteresisController",
    "ControllerState",
    "Command",
    "TickState",
]
