"""IoT Ledger Simulator - simulate fleets of IoT devices that report drifting
sensor readings to a distributed-ledger contract.

Quick start::

    import asyncio

    from iot_ledger_sim import SimulationScheduler
    from iot_ledger_sim.ledger import InMemoryLedger

    async def main():
        async with SimulationScheduler(InMemoryLedger(), seed=42) as sched:
            sched.create_device("porch-weather", "weather_station", "Porch", 0)
            summary = await sched.start(duration_s=10, interval_s=2)
            print(summary.to_json())

    asyncio.run(main())
"""

from __future__ import annotations

from iot_ledger_sim.errors import ConfigError, LedgerCallError, RegistrationError, SimulatorError
from iot_ledger_sim.models import Device, RunState, SimulationOptions, SimulationSummary, TerminationReason
from iot_ledger_sim.patterns import ContinuousPattern, DiscretePattern, next_value
from iot_ledger_sim.registry import DeviceRegistry
from iot_ledger_sim.scheduler import SimulationScheduler
from iot_ledger_sim.templates import TEMPLATES, DeviceTemplate, TemplateName

__all__ = [
    "TEMPLATES",
    "ConfigError",
    "ContinuousPattern",
    "Device",
    "DeviceRegistry",
    "DeviceTemplate",
    "DiscretePattern",
    "LedgerCallError",
    "RegistrationError",
    "RunState",
    "SimulationOptions",
    "SimulationScheduler",
    "SimulationSummary",
    "SimulatorError",
    "TemplateName",
    "TerminationReason",
    "next_value",
]

__version__ = "0.1.0"
