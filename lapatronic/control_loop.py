"""
Control Loop - Energy Level Hysteresis Control

This module implements the main control logic that:
1. Reads stored/maximum energy from the energy adapter
2. Records the reading in a bounded history
3. Switches the redstone output with hysteresis
4. Estimates the charge/drain rate for reporting
5. Performs periodic memory maintenance

Control rule:
    output OFF and energy <= low_threshold  -> switch ON
    output ON  and energy >= high_threshold -> switch OFF
    otherwise                               -> hold

The loop runs in a single task: a tick finishes before the next one
starts and the wait between ticks is the only cancellation point.
Device calls block the loop and no timeout is imposed on them here, so
a hung device call stalls the loop until the device backend gives up.

Fail-safe: the output is switched OFF once at startup, once when the
loop is stopped or cancelled, and once before a fatal error propagates.
"""

import asyncio
import time
from typing import Any, Callable

import psutil

from lapatronic.common.config import ControllerConfig
from lapatronic.common.logging_setup import LogContext, get_service_logger, log_control_tick
from lapatronic.services.control.hysteresis import Command, HysteresisController
from lapatronic.services.control.state import TickState
from lapatronic.services.control.status_server import StatusServer
from lapatronic.services.device.actuator import ActuatorDriver, ApplyResult
from lapatronic.services.sensor.reader import SensorReader
from lapatronic.services.telemetry.history import EMERGENCY_HISTORY_SIZE, HistoryBuffer
from lapatronic.services.telemetry.rate import RateEstimator, time_estimates

logger = get_service_logger("control")

# Ticks between maintenance passes
GC_INTERVAL = 100


def system_memory_percent() -> float:
    """System memory usage in percent"""
    return psutil.virtual_memory().percent


class ControlLoop:
    """
    Owns every piece of control state: history, rate FIFO, controller
    state and the devices. Nothing is shared outside this object.
    """

    def __init__(
        self,
        config: ControllerConfig,
        sensor_device: Any,
        actuator_device: Any,
        clock: Callable[[], float] = time.monotonic,
        memory_probe: Callable[[], float] = system_memory_percent,
    ):
        self.config = config
        self.sensor_device = sensor_device
        self.clock = clock
        self.memory_probe = memory_probe

        self.reader = SensorReader(clock=clock)
        self.history = HistoryBuffer(config.history_duration, config.max_history_size)
        self.rates = RateEstimator(
            config.rate_history_size,
            target_rate_window=config.target_rate_window,
            min_elapsed_gate=config.min_elapsed_gate,
        )
        self.controller = HysteresisController(config.low_threshold, config.high_threshold)
        self.actuator = ActuatorDriver(actuator_device)

        self.state = TickState()
        self.tick_count = 0
        self.fail_safe_count = 0
        self.emergency_trims = 0

        self._running = False
        self._stop_event = asyncio.Event()
        self._start_time = time.time()
        self._status_server: StatusServer | None = None

        logger.info(
            f"Control loop initialized: interval={config.check_interval}s, "
            f"low={config.low_threshold * 100:.0f}%, high={config.high_threshold * 100:.0f}%, "
            f"history={config.history_duration:.0f}s/{config.max_history_size}"
        )

    # Lifecycle

    def start_up(self) -> ApplyResult:
        """Reset to Inactive and put the output in a known OFF state"""
        self.controller.reset()
        result = self.actuator.apply(Command.OFF)
        if result.success:
            logger.info("Redstone output initialized OFF")
        else:
            logger.warning(f"Initial OFF failed, continuing: {result.error}")
        return result

    def fail_safe(self, reason: str) -> ApplyResult | None:
        """
        Single best-effort attempt to switch the output OFF.

        Never raises and never retries.
        """
        self.fail_safe_count += 1
        logger.warning(f"Fail-safe OFF ({reason})", extra={"reason": reason})

        result = None
        try:
            result = self.actuator.apply(Command.OFF)
        except Exception as e:
            logger.error(f"Fail-safe OFF raised: {e}", exc_info=True)
        else:
            if result.success:
                logger.info("Redstone signal disabled")
            else:
                logger.error(f"Fail-safe OFF failed: {result.error}")

        self.controller.reset()
        return result

    def stop(self) -> None:
        """Request a graceful stop at the next tick boundary"""
        logger.info("Stop requested")
        self._stop_event.set()

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """
        Run until stop() is called or the task is cancelled.

        Raises:
            asyncio.CancelledError: after the fail-safe OFF when cancelled
            Exception: any unexpected error, after the fail-safe OFF
        """
        logger.info("Starting control loop...")
        self._running = True
        self._start_time = time.time()

        try:
            await self._start_status_server()
            self.start_up()

            while not self._stop_event.is_set():
                tick_start = self.clock()
                self.run_tick()

                remaining = self.config.check_interval - (self.clock() - tick_start)
                if await self._wait_for_stop(max(0.0, remaining)):
                    break

        except asyncio.CancelledError:
            logger.info("Control loop cancelled")
            self.fail_safe("cancelled")
            raise
        except Exception as e:
            logger.critical(f"Fatal control loop error: {e}", exc_info=True)
            self.fail_safe("fatal error")
            raise
        else:
            logger.info("Program interrupted - cleaning up...")
            self.fail_safe("shutdown")
        finally:
            self._running = False
            await self._stop_status_server()
            logger.info("Control loop stopped")

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Wait for the next tick; True if a stop was requested meanwhile"""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # Tick

    def run_tick(self) -> TickState:
        """Execute one control tick"""
        self.tick_count += 1
        with LogContext(logger.logger, tick=self.tick_count):
            state = self._tick()
            self._maintenance()
        self.state = state
        return state

    def _tick(self) -> TickState:
        start = time.perf_counter()
        state = TickState(tick=self.tick_count, active=self.controller.active)

        sensor = self.reader.read(self.sensor_device)
        state.percent = sensor.percent
        state.reading_kind = sensor.kind.value
        state.strategy = sensor.strategy
        state.current_energy = sensor.current_energy
        state.max_energy = sensor.max_energy

        if not sensor.ok:
            error = sensor.to_error()
            candidates = getattr(error, "candidates", [])
            message = f"Error reading energy level: {error}"
            if candidates:
                message += f" (available: {', '.join(candidates)})"
            logger.warning(
                message,
                extra={"reading_kind": sensor.kind.value, "candidates": candidates},
            )
        else:
            self.history.append(sensor.reading)
            self._control(sensor.percent, state)
            self._update_rates(state)

        state.active = self.controller.active
        state.history_size = len(self.history)
        state.execution_time_ms = (time.perf_counter() - start) * 1000

        if sensor.ok:
            log_control_tick(
                logger,
                state.percent,
                state.active,
                state.smoothed_rate,
                state.execution_time_ms,
                time_to_empty=state.time_to_empty_s,
                time_to_full=state.time_to_full_s,
            )
        return state

    def _control(self, percent: float, state: TickState) -> None:
        command = self.controller.evaluate(percent)
        if command is None:
            return

        state.command = command.value
        if command == Command.ON:
            logger.info(f"Energy low ({percent * 100:.1f}%) - Activating power systems")
        else:
            logger.info(f"Energy sufficient ({percent * 100:.1f}%) - Deactivating power systems")

        result = self.actuator.apply(command)
        state.write_success = result.success
        if result.success:
            self.controller.commit(command)
        else:
            state.write_error = str(result.error)
            logger.warning(
                f"Output {command.value.upper()} not applied, retrying next tick: {result.error}",
                extra={"command": command.value},
            )

    def _update_rates(self, state: TickState) -> None:
        smoothed = self.rates.update(self.history)
        instantaneous = self.rates.last_instantaneous

        state.rate_status = instantaneous.status.value
        if instantaneous.ok:
            state.instantaneous_rate = instantaneous.rate
        if smoothed.ok:
            state.smoothed_rate = smoothed.rate
            state.time_to_empty_s, state.time_to_full_s = time_estimates(
                state.current_energy, state.max_energy, smoothed.rate
            )

    def _maintenance(self) -> None:
        if self.tick_count % GC_INTERVAL != 0:
            return

        try:
            memory_pct = self.memory_probe()
        except Exception as e:
            logger.warning(f"Memory check failed: {e}")
            return

        logger.debug(
            f"Maintenance: memory={memory_pct:.1f}%, history={len(self.history)}",
            extra={"memory_pct": memory_pct, "history_size": len(self.history)},
        )

        if memory_pct >= self.config.memory_pressure_pct:
            self.emergency_trim()

    def emergency_trim(self) -> None:
        """Cap history and rate samples under memory pressure"""
        self.emergency_trims += 1
        removed = self.history.trim(EMERGENCY_HISTORY_SIZE)
        self.rates.trim(1)
        logger.warning(
            f"Memory pressure: trimmed history to {len(self.history)} entries",
            extra={"removed": removed},
        )

    # Status

    def get_status(self) -> dict:
        """Current controller status as dictionary"""
        last_result = self.actuator.last_result
        return {
            "running": self._running,
            "tick_count": self.tick_count,
            "uptime_seconds": int(time.time() - self._start_time),
            "active": self.controller.active,
            "percent": self.state.percent,
            "reading_kind": self.state.reading_kind,
            "strategy": self.reader.last_strategy,
            "history_size": len(self.history),
            "rate_samples": len(self.rates.samples),
            "emergency_trims": self.emergency_trims,
            "low_threshold": self.config.low_threshold,
            "high_threshold": self.config.high_threshold,
            "check_interval": self.config.check_interval,
            "last_apply": last_result.to_dict() if last_result else None,
        }

    def get_state(self) -> dict:
        return self.state.to_dict()

    async def _start_status_server(self) -> None:
        if self.config.status_port <= 0:
            return
        self._status_server = StatusServer(
            self.get_status, self.get_state, port=self.config.status_port
        )
        await self._status_server.start()

    async def _stop_status_server(self) -> None:
        if self._status_server:
            await self._status_server.stop()
            self._status_server = None
