"""
Lapatronic Supercapacitor Controller - Main Entry Point

Usage:
    lapatronic                          # run with config.yaml from the search paths
    lapatronic run --config my.yaml     # run with a specific config file
    lapatronic run --dry-run            # print config and exit
    lapatronic run --simulate           # run against the virtual capacitor
    lapatronic inspect                  # list accessors the energy adapter exposes
    lapatronic test-energy              # test every telemetry strategy
    lapatronic debug-energy             # one verbose energy read

The controller will:
1. Load configuration from YAML
2. Connect to the energy adapter and the redstone output
3. Switch the output OFF, then run the hysteresis control loop
4. Switch the output OFF again on Ctrl+C, SIGTERM or a fatal error
"""

import argparse
import asyncio
import json
import signal
import sys

from lapatronic.common.config import ControllerConfig, DeviceBackend, load_config
from lapatronic.common.exceptions import ConfigError, LapatronicError
from lapatronic.common.formatting import format_eu
from lapatronic.common.logging_setup import get_service_logger, set_log_level
from lapatronic.control_loop import ControlLoop
from lapatronic.services.device.registry import build_devices, close_devices
from lapatronic.services.sensor.diagnostics import (
    inspect_accessors,
    probe_all_strategies,
    read_io_rates,
)
from lapatronic.services.sensor.reader import SensorReader

logger = get_service_logger("main")

EXIT_FATAL = 1
EXIT_CONFIG = 2


def print_config_summary(config: ControllerConfig) -> None:
    """Print a summary of the configuration."""
    print("\n" + "=" * 60)
    print("  LAPATRONIC SUPERCAPACITOR CONTROLLER")
    print("=" * 60)

    print(f"\n  Config file: {config.source_path or '(defaults)'}")

    print("\n  Control Settings:")
    print(f"    - Low threshold: {config.low_threshold * 100:.0f}%")
    print(f"    - High threshold: {config.high_threshold * 100:.0f}%")
    print(f"    - Check interval: {config.check_interval}s")

    print("\n  Telemetry:")
    print(f"    - History: {config.history_duration:.0f}s / {config.max_history_size} readings")
    print(f"    - Rate window: {config.target_rate_window:.0f}s "
          f"(min {config.min_elapsed_gate:.0f}s), smoothing over {config.rate_history_size}")

    devices = config.devices
    print(f"\n  Devices ({devices.backend.value}):")
    if devices.backend == DeviceBackend.MODBUS:
        print(f"    - Sensor: {devices.sensor.host}:{devices.sensor.port} "
              f"slave {devices.sensor.slave_id}")
        for name, reg in sorted(devices.sensor.accessors.items()):
            print(f"        {name}: {reg.type} {reg.address} ({reg.datatype.value})")
        print(f"    - Redstone: {devices.actuator.host}:{devices.actuator.port} "
              f"slave {devices.actuator.slave_id}, base register {devices.actuator.base_address}")
    else:
        sim = devices.simulated
        print(f"    - Virtual capacitor: {format_eu(sim.initial_energy)} / {format_eu(sim.capacity)}")
        print(f"    - Accessors: {sim.accessor_family}")

    if config.status_port:
        print(f"\n  Status endpoint: http://127.0.0.1:{config.status_port}/health")

    print("=" * 60 + "\n")


async def main_async(control_loop: ControlLoop) -> None:
    """Run the control loop with SIGINT/SIGTERM wired to a graceful stop."""
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, control_loop.stop)
        except NotImplementedError:
            signal.signal(sig, lambda s, f: control_loop.stop())

    await control_loop.run()


def cmd_run(args: argparse.Namespace, config: ControllerConfig) -> int:
    if args.dry_run:
        print_config_summary(config)
        print("Dry run mode - exiting without starting controller")
        return 0

    print_config_summary(config)
    backend = DeviceBackend.SIMULATED if args.simulate else None
    sensor, actuator = build_devices(config, backend)

    control_loop = ControlLoop(config, sensor, actuator)
    print("Press Ctrl+C to stop\n")

    try:
        asyncio.run(main_async(control_loop))
    except KeyboardInterrupt:
        # Ctrl+C before the signal handler was installed
        if control_loop.fail_safe_count == 0:
            control_loop.fail_safe("interrupted")
        print("\nStopped by user")
    except Exception as e:
        logger.critical(f"Fatal error: {e}")
        print(f"Fatal error: {e}", file=sys.stderr)
        print("Ensure all components are properly connected!", file=sys.stderr)
        return EXIT_FATAL
    finally:
        close_devices(sensor, actuator)

    return 0


def cmd_inspect(args: argparse.Namespace, config: ControllerConfig) -> int:
    backend = DeviceBackend.SIMULATED if args.simulate else None
    sensor, actuator = build_devices(config, backend)

    try:
        print("=== ADAPTER INSPECTION ===")
        print(f"Component type: {getattr(sensor, 'type', 'unknown')}\n")

        reports = inspect_accessors(sensor)
        if not reports:
            print("NO CALLABLE METHODS FOUND!")
            print("The adapter does not expose any get*/is* accessors.")
            return 1

        for report in reports:
            if report.ok:
                print(f"  [OK]   {report.name}() -> {report.value!r}")
            else:
                print(f"  [--]   {report.name}() : {report.error}")

        working = sum(1 for r in reports if r.ok)
        print(f"\nSummary: {len(reports)} accessors, {working} returned a value")
        return 0
    finally:
        close_devices(sensor, actuator)


def cmd_test_energy(args: argparse.Namespace, config: ControllerConfig) -> int:
    backend = DeviceBackend.SIMULATED if args.simulate else None
    sensor, actuator = build_devices(config, backend)

    try:
        reports = probe_all_strategies(sensor)

        if args.json:
            print(json.dumps([r.to_dict() for r in reports], indent=2))
        else:
            print("=== ENERGY METHOD TESTING ===\n")
            for report in reports:
                if report.working:
                    print(f"  [WORKING] {report.strategy_id}: "
                          f"{format_eu(report.current_energy)} / {format_eu(report.max_energy)} "
                          f"({report.percent * 100:.1f}%)")
                elif report.available:
                    print(f"  [FAILING] {report.strategy_id}: {report.errors}")
                else:
                    print(f"  [ABSENT]  {report.strategy_id}")

            eu_in, eu_out = read_io_rates(sensor)
            print("\nInput/Output rates:")
            print(f"  In:  {format_eu(eu_in) + '/t' if eu_in is not None else 'not available'}")
            print(f"  Out: {format_eu(eu_out) + '/t' if eu_out is not None else 'not available'}")

        working = [r for r in reports if r.working]
        if not working:
            print("\nNO WORKING ENERGY METHODS FOUND!", file=sys.stderr)
            return 1
        return 0
    finally:
        close_devices(sensor, actuator)


def cmd_debug_energy(args: argparse.Namespace, config: ControllerConfig) -> int:
    set_log_level("DEBUG")
    backend = DeviceBackend.SIMULATED if args.simulate else None
    sensor, actuator = build_devices(config, backend)

    try:
        reader = SensorReader(debug=True)
        result = reader.read(sensor)
        print(f"Final result: {result.percent * 100:.1f}% ({result.kind.value})")
        if reader.last_candidates:
            print("Candidate accessors: " + ", ".join(reader.last_candidates))
        return 0 if result.ok else 1
    finally:
        close_devices(sensor, actuator)


COMMANDS = {
    "run": cmd_run,
    "inspect": cmd_inspect,
    "test-energy": cmd_test_energy,
    "debug-energy": cmd_debug_energy,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Lapatronic supercapacitor controller",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to configuration file (default: search config.yaml)",
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Use the virtual capacitor instead of the configured devices",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    run_parser = subparsers.add_parser("run", help="Start the power controller")
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print configuration and exit without starting controller",
    )

    subparsers.add_parser("inspect", help="List accessors the energy adapter exposes")

    test_parser = subparsers.add_parser("test-energy", help="Test all energy reading methods")
    test_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    subparsers.add_parser("debug-energy", help="Run one energy read with debug output")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        args.command = "run"
        args.dry_run = False

    if args.verbose:
        set_log_level("DEBUG")

    try:
        config = load_config(args.config)
        return COMMANDS[args.command](args, config)
    except ConfigError as e:
        print(f"{e}", file=sys.stderr)
        return EXIT_CONFIG
    except LapatronicError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
