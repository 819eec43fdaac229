"""In-memory ledger - a process-local model of the device data contract.

Useful for tests, demos and dry runs.  Mirrors what the contract stores:
one device per identity, and per sensor the current value, its change count
and a short history of recent changes.  Failures and latency can be
injected to exercise the scheduler's error handling.
"""

from __future__ import annotations

import asyncio
import hashlib
import itertools
import logging
import time
from typing import Any

from pydantic import BaseModel, Field

from iot_ledger_sim.ledger.base import LedgerClient, LedgerResult

__all__ = ["InMemoryLedger", "LedgerCall", "SensorState"]

logger = logging.getLogger("iot_ledger_sim.ledger.memory")

_HISTORY_LIMIT = 50
_CALL_LOG_LIMIT = 1000


class SensorState(BaseModel):
    value: str
    timestamp: float
    change_count: int = 1
    history: list[tuple[str, float]] = Field(default_factory=list)


class _DeviceEntry(BaseModel):
    device_id: str
    location: str
    registration_time: float
    is_active: bool = True
    sensors: dict[str, SensorState] = Field(default_factory=dict)


class LedgerCall(BaseModel):
    """One recorded call, kept in :attr:`InMemoryLedger.calls`."""

    method: str
    identity: str | None = None
    args: dict[str, Any] = Field(default_factory=dict)


class InMemoryLedger(LedgerClient):
    """Ledger adapter backed by plain dicts.

    Parameters:
        identities: Accounts returned by :meth:`list_identities`.  Defaults
            to ten deterministic hex addresses.
        latency_s: Artificial delay applied to every call.
        fail_register: Identities whose registration is rejected.
        fail_updates: Identities whose updates are rejected.
        call_log_limit: Most recent calls kept in :attr:`calls`.
    """

    def __init__(
        self,
        *,
        identities: list[str] | None = None,
        latency_s: float = 0.0,
        fail_register: set[str] | None = None,
        fail_updates: set[str] | None = None,
        call_log_limit: int = _CALL_LOG_LIMIT,
    ) -> None:
        self._identities = list(identities) if identities is not None else _default_identities(10)
        self.latency_s = latency_s
        self.fail_register: set[str] = set(fail_register or ())
        self.fail_updates: set[str] = set(fail_updates or ())
        self._devices: dict[str, _DeviceEntry] = {}
        self._nonce = itertools.count(1)
        self.call_log_limit = call_log_limit
        self.calls: list[LedgerCall] = []

    # -- LedgerClient ---------------------------------------------------

    async def register(self, identity: str, device_id: str, location: str) -> LedgerResult:
        await self._record("register", identity, device_id=device_id, location=location)
        if identity in self.fail_register:
            return LedgerResult.failure("registration rejected")
        existing = self._devices.get(identity)
        if existing is not None and existing.is_active:
            return LedgerResult.failure("Device already registered")
        self._devices[identity] = _DeviceEntry(
            device_id=device_id,
            location=location,
            registration_time=time.time(),
        )
        return LedgerResult.success(self._tx_hash())

    async def update_one(self, identity: str, sensor: str, value: str) -> LedgerResult:
        await self._record("update_one", identity, sensor=sensor, value=value)
        return self._apply(identity, {sensor: value})

    async def update_batch(self, identity: str, sensors: list[str], values: list[str]) -> LedgerResult:
        await self._record("update_batch", identity, sensors=list(sensors), values=list(values))
        if len(sensors) != len(values):
            return LedgerResult.failure("Arrays length mismatch")
        return self._apply(identity, dict(zip(sensors, values)))

    async def query_device_active(self, identity: str) -> bool:
        await self._record("query_device_active", identity)
        entry = self._devices.get(identity)
        return entry is not None and entry.is_active

    async def query_device_count(self) -> int:
        await self._record("query_device_count", None)
        return len(self._devices)

    async def list_identities(self) -> list[str]:
        return list(self._identities)

    # -- inspection helpers ---------------------------------------------

    def sensor_state(self, identity: str, sensor: str) -> SensorState | None:
        entry = self._devices.get(identity)
        return entry.sensors.get(sensor) if entry else None

    def device_info(self, identity: str) -> dict[str, Any] | None:
        entry = self._devices.get(identity)
        return entry.model_dump(exclude={"sensors"}) if entry else None

    def recent_changes(self, identity: str, sensor: str, limit: int = 10) -> list[tuple[str, float]]:
        state = self.sensor_state(identity, sensor)
        return state.history[-limit:] if state else []

    def count_calls(self, method: str, identity: str | None = None) -> int:
        return sum(
            1
            for c in self.calls
            if c.method == method and (identity is None or c.identity == identity)
        )

    # -- internal -------------------------------------------------------

    async def _record(self, method: str, identity: str | None, **args: Any) -> None:
        self.calls.append(LedgerCall(method=method, identity=identity, args=args))
        del self.calls[:-self.call_log_limit]
        if self.latency_s > 0:
            await asyncio.sleep(self.latency_s)

    def _apply(self, identity: str, values: dict[str, str]) -> LedgerResult:
        if identity in self.fail_updates:
            return LedgerResult.failure("update rejected")
        entry = self._devices.get(identity)
        if entry is None or not entry.is_active:
            return LedgerResult.failure("Device not registered")

        now = time.time()
        for sensor, value in values.items():
            state = entry.sensors.get(sensor)
            if state is None:
                entry.sensors[sensor] = SensorState(value=value, timestamp=now, history=[(value, now)])
            elif state.value != value:
                state.value = value
                state.timestamp = now
                state.change_count += 1
                state.history.append((value, now))
                del state.history[:-_HISTORY_LIMIT]
        logger.debug("Applied %d sensor values for %s", len(values), identity)
        return LedgerResult.success(self._tx_hash())

    def _tx_hash(self) -> str:
        return "0x" + hashlib.sha256(str(next(self._nonce)).encode()).hexdigest()


def _default_identities(n: int) -> list[str]:
    return ["0x" + hashlib.sha1(f"account-{i}".encode()).hexdigest() for i in range(n)]
