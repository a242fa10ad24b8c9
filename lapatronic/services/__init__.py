"""
Controller Services

- sensor/    - energy adapter probing and diagnostics
- telemetry/ - energy history and rate estimation
- control/   - hysteresis state machine, tick state, status server
- device/    - actuator driver and device backends
"""
