"""
Lapatronic Supercapacitor Controller

Monitors the charge level of a supercapacitor through an energy adapter
and drives a redstone output with hysteresis.
"""

__version__ = "1.0.0"
