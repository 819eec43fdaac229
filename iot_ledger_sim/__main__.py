"""CLI entry point for the IoT Ledger Simulator.

Usage::

    iot-ledger-sim run --scenario smart_home --duration 30
    iot-ledger-sim run --config simulation.yaml
    iot-ledger-sim status --config simulation.yaml
    iot-ledger-sim list-templates
    iot-ledger-sim list-scenarios
    iot-ledger-sim init-config --output simulation.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
import textwrap
from typing import Any

# ---------------------------------------------------------------------------
# Sample YAML config template for init-config
# ---------------------------------------------------------------------------
_SAMPLE_CONFIG = """\
# IoT Ledger Simulator configuration

simulation:
  duration_s: 60                      # stop after N seconds
  interval_s: 5                       # one tick every N seconds
  # seed: 42                          # reproducible sensor drift
  # max_batch_size: 16                # cap on sensors per batch call
  # log_level: INFO                   # DEBUG, INFO, WARNING, ERROR

# Ledger adapter. 'memory' keeps everything in-process (dry run).
ledger:
  type: memory
  # type: http
  # base_url: http://localhost:8080/api
  # timeout_s: 30
  # headers:
  #   Authorization: Bearer my-token

# Optional: fixed accounts instead of asking the ledger
# identities:
#   - "0x5b38da6a701c568545dcfcb03fcb875f56beddc4"

# Optional: define your own device templates
# custom_templates:
#   - name: cold_room
#     description: Freezer monitor
#     sensors:
#       temperature: {kind: continuous, min: -25, max: -15, step: 0.2}
#       door: {kind: discrete, values: [closed, open], probability: 0.05}

devices:
  - {id: living-room-weather, template: weather_station, location: Living Room, identity: 0}
  - {id: security-system, template: security_sensor, location: Main Entrance, identity: 1}
  - {id: kitchen-meter, template: smart_meter, location: Kitchen, identity: 2}
"""


# ======================================================================
# Main entry point
# ======================================================================


def main(argv: list[str] | None = None) -> None:
    epilog = textwrap.dedent("""\
        examples:
          iot-ledger-sim run --scenario smart_home --duration 30
          iot-ledger-sim run --config simulation.yaml --interval 2
          iot-ledger-sim status --config simulation.yaml
          iot-ledger-sim list-templates
          iot-ledger-sim list-scenarios
          iot-ledger-sim init-config --output simulation.yaml
    """)

    parser = argparse.ArgumentParser(
        prog="iot-ledger-sim",
        description="Simulate IoT devices reporting sensor readings to a ledger contract.",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", title="commands")

    # -- run ---------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Run a simulation (register devices and push sensor updates).",
    )
    _add_source_args(run_parser)
    run_parser.add_argument(
        "--duration",
        "-d",
        type=float,
        default=None,
        help="Run duration in seconds (overrides the config / scenario).",
    )
    run_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Tick interval in seconds (overrides the config / scenario).",
    )
    run_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible sensor drift.",
    )
    run_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the final summary as JSON.",
    )
    run_parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )

    # -- status ------------------------------------------------------------
    status_parser = subparsers.add_parser(
        "status",
        help="Show the ledger's device count and which local devices are active.",
    )
    _add_source_args(status_parser)

    # -- list-templates / list-scenarios ------------------------------------
    subparsers.add_parser("list-templates", help="List built-in device templates and their sensors.")
    subparsers.add_parser("list-scenarios", help="List built-in scenarios.")

    # -- init-config -------------------------------------------------------
    init_parser = subparsers.add_parser(
        "init-config",
        help="Generate a sample YAML configuration file.",
    )
    init_parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write config to this file instead of stdout.",
    )

    # Flags without a sub-command mean "run" (e.g. `iot-ledger-sim --scenario industrial`).
    _known_commands = {"run", "status", "list-templates", "list-scenarios", "init-config"}
    raw_args = argv if argv is not None else sys.argv[1:]
    if raw_args and raw_args[0] not in _known_commands and raw_args[0] not in ("-h", "--help"):
        raw_args = ["run", *list(raw_args)]

    args = parser.parse_args(raw_args)

    if args.command is None:
        parser.print_help()
        return

    # -- Dispatch ----------------------------------------------------------
    if args.command == "run":
        _cmd_run(args)
    elif args.command == "status":
        _cmd_status(args)
    elif args.command == "list-templates":
        _cmd_list_templates()
    elif args.command == "list-scenarios":
        _cmd_list_scenarios()
    elif args.command == "init-config":
        _cmd_init_config(args.output)
    else:
        parser.print_help()


def _add_source_args(sub: argparse.ArgumentParser) -> None:
    group = sub.add_mutually_exclusive_group()
    group.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML config file.",
    )
    group.add_argument(
        "--scenario",
        "-s",
        type=str,
        default=None,
        help="Built-in scenario name (run 'list-scenarios'). Default: custom.",
    )


# ======================================================================
# Command implementations
# ======================================================================


def _load_config(args: argparse.Namespace, **overrides: Any):
    from iot_ledger_sim.config import load_yaml_config, scenario_config
    from iot_ledger_sim.errors import ConfigError

    try:
        if args.config:
            cfg = load_yaml_config(args.config)
            return cfg.model_copy(update={k: v for k, v in overrides.items() if v is not None})
        return scenario_config(args.scenario or "custom", **overrides)
    except (ConfigError, FileNotFoundError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)


def _cmd_run(args: argparse.Namespace) -> None:
    """Execute a simulation and print its summary."""
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )

    cfg = _load_config(args, seed=args.seed)
    if args.config:
        logging.getLogger().setLevel(getattr(logging, cfg.log_level, logging.INFO))

    from iot_ledger_sim.errors import ConfigError

    try:
        summary = asyncio.run(_run_session(cfg, duration_s=args.duration, interval_s=args.interval))
    except ConfigError as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        logging.getLogger("iot_ledger_sim").info("Interrupted by user")
        return

    if args.json:
        print(summary.to_json())
    else:
        _print_summary(summary)


async def _run_session(cfg, *, duration_s: float | None, interval_s: float | None):
    options = cfg.options(duration_s=duration_s, interval_s=interval_s)
    async with cfg.build_scheduler() as sched:
        cfg.create_devices(sched)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, sched.stop)
        return await sched.start(options)


def _print_summary(summary) -> None:
    print("\n=== Simulation Summary ===")
    print(f"State:  {summary.state} ({summary.reason})")
    if summary.error:
        print(f"Error:  {summary.error}")
    c = summary.counters
    print(
        f"Ticks:  {c.ticks}   single: {c.single_updates}   batch: {c.batch_updates}   "
        f"failed: {c.update_failures}   registration failures: {c.registration_failures}\n"
    )
    for dev in summary.devices:
        if not dev.registered:
            continue
        print(f"{dev.device_id} ({dev.template}):")
        print(f"  Location: {dev.location}")
        print(f"  Account:  {dev.identity}")
        print(f"  Updates:  {dev.update_count}")
        print("  Current values:")
        for sensor, value in dev.last_values.items():
            print(f"    {sensor}: {value}")
        print()


# -- status ----------------------------------------------------------------


def _cmd_status(args: argparse.Namespace) -> None:
    from iot_ledger_sim.errors import ConfigError

    cfg = _load_config(args)
    try:
        status = asyncio.run(_status_session(cfg))
    except ConfigError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    print("\n=== Network Status ===")
    print(f"Total devices on network: {status['device_count']}")
    for device_id, active in status["devices"].items():
        print(f"  {device_id:<30} {'active' if active else 'not registered'}")
    print()


async def _status_session(cfg) -> dict[str, Any]:
    async with cfg.build_scheduler() as sched:
        cfg.create_devices(sched)
        return await sched.network_status()


# -- list-templates --------------------------------------------------------


def _cmd_list_templates() -> None:
    from iot_ledger_sim.patterns import DiscretePattern
    from iot_ledger_sim.templates import TEMPLATES

    for name, tpl in TEMPLATES.items():
        print(f"\n{name} - {tpl.description}")
        print(f"  {'Sensor':<14} {'Kind':<11} {'Pattern'}")
        print("  " + "-" * 60)
        for sensor, spec in tpl.sensors.items():
            if isinstance(spec, DiscretePattern):
                detail = f"values={spec.values} p={spec.probability}"
            else:
                detail = f"[{spec.min:g}, {spec.max:g}] step={spec.step:g}"
                if spec.monotonic:
                    detail += " monotonic"
            print(f"  {sensor:<14} {spec.kind:<11} {detail}")
    print()


# -- list-scenarios --------------------------------------------------------


def _cmd_list_scenarios() -> None:
    from iot_ledger_sim.config import SCENARIOS

    print(f"\n{'Scenario':<14} {'Devices':>7} {'Duration':>9} {'Interval':>9}")
    print("-" * 42)
    for name, scenario in SCENARIOS.items():
        print(
            f"{name:<14} {len(scenario['devices']):>7} "
            f"{scenario['duration_s']:>8.0f}s {scenario['interval_s']:>8.0f}s"
        )
    print()


# -- init-config ------------------------------------------------------------


def _cmd_init_config(output_path: str | None) -> None:
    if output_path:
        from pathlib import Path

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(_SAMPLE_CONFIG)
        print(f"Sample config written to {output_path}")
    else:
        print(_SAMPLE_CONFIG)


# ======================================================================
if __name__ == "__main__":
    main()
