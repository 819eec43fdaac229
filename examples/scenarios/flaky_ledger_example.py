#!/usr/bin/env python3
"""Failure-handling examples -- 3 cases showing how the scheduler copes with
a misbehaving ledger.

Directly runnable (in-memory ledger, no external services).

Usage::

    python examples/scenarios/flaky_ledger_example.py            # Case 1 (default)
    python examples/scenarios/flaky_ledger_example.py --case 2   # Rejected updates
    python examples/scenarios/flaky_ledger_example.py --case 3   # Slow ledger + stop()
"""

from __future__ import annotations

import argparse
import asyncio
import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
    datefmt="%H:%M:%S",
)

# ---------------------------------------------------------------------------
# Case 1: Registration rejected for one identity
# ---------------------------------------------------------------------------


async def run_case_1() -> None:
    """The ledger refuses one registration; the other devices keep going.

    Knobs demonstrated:
      - fail_register   -> identities whose registration is rejected
      - counters        -> registration_failures / skipped_unregistered
    """
    from iot_ledger_sim import SimulationScheduler
    from iot_ledger_sim.ledger import InMemoryLedger

    print("=== Case 1: Registration rejected ===\n")

    ledger = InMemoryLedger()
    accounts = await ledger.list_identities()
    ledger.fail_register.add(accounts[1])

    async with SimulationScheduler(ledger, seed=1) as sched:
        sched.create_device("porch-weather", "weather_station", "Porch", 0)
        sched.create_device("front-door", "security_sensor", "Front Door", 1)
        summary = await sched.start(duration_s=6, interval_s=2)

    c = summary.counters
    print(f"\n  registration failures: {c.registration_failures}, skipped: {c.skipped_unregistered}")


# ---------------------------------------------------------------------------
# Case 2: Updates rejected -- last values stay put
# ---------------------------------------------------------------------------


async def run_case_2() -> None:
    """One device's updates are rejected; its last values never move.

    Knobs demonstrated:
      - fail_updates    -> identities whose updates are rejected
      - max_batch_size  -> at most 2 sensors per batch call
    """
    from iot_ledger_sim import SimulationScheduler
    from iot_ledger_sim.ledger import InMemoryLedger

    print("=== Case 2: Rejected updates ===\n")

    ledger = InMemoryLedger()
    accounts = await ledger.list_identities()
    ledger.fail_updates.add(accounts[0])

    async with SimulationScheduler(ledger, seed=2) as sched:
        sched.create_device("broken-meter", "smart_meter", "Garage", 0)
        sched.create_device("good-meter", "smart_meter", "Kitchen", 1)
        summary = await sched.start(duration_s=6, interval_s=2, max_batch_size=2)

    for dev in summary.devices:
        print(f"  {dev.device_id:<14} updates={dev.update_count} {dev.last_values}")
    print(f"  failed update calls: {summary.counters.update_failures}")


# ---------------------------------------------------------------------------
# Case 3: Slow ledger and an early stop()
# ---------------------------------------------------------------------------


async def run_case_3() -> None:
    """Each call takes 1.5s while ticks are due every second; stop() after 5s.

    Knobs demonstrated:
      - latency_s   -> overrunning ticks defer the next one
      - stop()      -> in-flight calls finish, no new tick starts
    """
    from iot_ledger_sim import SimulationScheduler
    from iot_ledger_sim.ledger import InMemoryLedger

    print("=== Case 3: Slow ledger + stop() ===\n")

    async with SimulationScheduler(InMemoryLedger(latency_s=1.5), seed=3) as sched:
        sched.create_device("air-1", "air_quality", "Office", 0)
        task = asyncio.create_task(sched.start(duration_s=60, interval_s=1))
        await asyncio.sleep(5)
        sched.stop()
        summary = await task

    print(f"\n  {summary.state} ({summary.reason}) after {summary.counters.ticks} ticks")


_CASES = {1: run_case_1, 2: run_case_2, 3: run_case_3}


def main() -> None:
    parser = argparse.ArgumentParser(description="Ledger failure-handling examples")
    parser.add_argument("--case", type=int, default=1, choices=sorted(_CASES))
    args = parser.parse_args()
    asyncio.run(_CASES[args.case]())


if __name__ == "__main__":
    main()
