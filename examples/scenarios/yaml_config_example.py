#!/usr/bin/env python3
"""YAML config-driven example -- load devices, templates and the ledger
adapter from a YAML file and run a timed simulation.

All settings (run timing, custom templates, devices, ledger) live in
``examples/configs/simulation.yaml``; the Python code is minimal.

Directly runnable (in-memory ledger, no external services).

Usage::

    python examples/scenarios/yaml_config_example.py

Equivalent CLI::

    iot-ledger-sim run --config examples/configs/simulation.yaml
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path


async def run(config_path: Path) -> None:
    from iot_ledger_sim.config import load_yaml_config

    cfg = load_yaml_config(config_path)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )

    print(f"  Devices:          {len(cfg.devices)}")
    print(f"  Custom templates: {[t.name for t in cfg.custom_templates]}")
    print(f"  Ledger:           {cfg.ledger}")
    print(f"  Duration:         {cfg.duration_s}s every {cfg.interval_s}s\n")

    async with cfg.build_scheduler() as sched:
        cfg.create_devices(sched)
        summary = await sched.start(cfg.options())

    print("\n=== Result ===")
    print(f"  {summary.state} ({summary.reason}) after {summary.counters.ticks} ticks")
    for dev in summary.devices:
        print(f"  {dev.device_id:<22} updates={dev.update_count:<3} {dev.last_values}")


def main() -> None:
    print("=== YAML Config-Driven Example ===\n")

    config_path = Path(__file__).parent.parent / "configs" / "simulation.yaml"
    if not config_path.exists():
        print(f"  Config file not found: {config_path}")
        return

    print(f"  Config file: {config_path}\n")
    asyncio.run(run(config_path))


if __name__ == "__main__":
    main()
