"""Actuator driver and device backends"""

from .actuator import ActuatorDriver, ApplyResult, CHANNEL_COUNT, LEVEL_ON, LEVEL_OFF
from .registry import build_devices, close_devices

__all__ = [
    "ActuatorDriver",
    "ApplyResult",
    "CHANNEL_COUNT",
    "LEVEL_ON",
    "LEVEL_OFF",
    "build_devices",
    "close_devices",
]
