"""Common data models for the IoT Ledger Simulator.

Defines the :class:`Device` record kept by the registry, the options a
simulation run accepts, and the summary produced when a run ends.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from iot_ledger_sim.patterns import PatternSpec

__all__ = [
    "Device",
    "DeviceSummary",
    "RunCounters",
    "RunState",
    "SimulationOptions",
    "SimulationSummary",
    "TerminationReason",
]


class RunState(StrEnum):
    """Scheduler lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    COMPLETED = "completed"


class TerminationReason(StrEnum):
    """Why a run left the ``running`` state."""

    DURATION_REACHED = "duration-reached"
    STOPPED = "stopped"
    ERROR = "error"


class Device(BaseModel):
    """A simulated device and its last-known state.

    Attributes:
        device_id: Unique identifier within a registry.
        template: Name of the template the device was built from.
        location: Free-form location label, e.g. ``"Living Room"``.
        identity: Account used for every ledger call made for this device.
        sensors: Sensor names, in template order.
        patterns: Sensor name → pattern driving its value.
        last_values: Sensor name → last value accepted by the ledger
            (string-encoded).  Always holds exactly ``sensors``.
        registered: ``True`` once the ledger knows the device.
        update_count: Number of successful update calls.
    """

    device_id: str
    template: str
    location: str
    identity: str
    sensors: list[str]
    patterns: dict[str, PatternSpec]
    last_values: dict[str, str]
    registered: bool = False
    update_count: int = 0

    def summary(self) -> DeviceSummary:
        return DeviceSummary(
            device_id=self.device_id,
            template=self.template,
            location=self.location,
            identity=self.identity,
            registered=self.registered,
            update_count=self.update_count,
            last_values=dict(self.last_values),
        )


class SimulationOptions(BaseModel):
    """Options accepted by :meth:`SimulationScheduler.start`.

    Attributes:
        duration_s: Wall-clock length of the run.
        interval_s: Time between ticks; the first tick fires one interval
            after start.
        devices: Device ids to simulate; ``None`` means every known device.
        max_batch_size: Cap on sensors folded into one batch call.  ``None``
            means no cap.
    """

    duration_s: float = Field(default=60.0, gt=0)
    interval_s: float = Field(default=5.0, gt=0)
    devices: list[str] | None = None
    max_batch_size: int | None = Field(default=None, ge=1)

    @field_validator("devices")
    @classmethod
    def _dedupe(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return list(dict.fromkeys(v))


class RunCounters(BaseModel):
    """Per-run bookkeeping."""

    ticks: int = 0
    single_updates: int = 0
    batch_updates: int = 0
    unchanged: int = 0
    update_failures: int = 0
    registration_failures: int = 0
    skipped_unregistered: int = 0


class DeviceSummary(BaseModel):
    device_id: str
    template: str
    location: str
    identity: str
    registered: bool
    update_count: int
    last_values: dict[str, str]


class SimulationSummary(BaseModel):
    """Snapshot produced when a run ends (or on demand while running)."""

    state: RunState
    reason: TerminationReason | None = None
    error: str | None = None
    started_at: float
    finished_at: float | None = None
    elapsed_s: float = 0.0
    counters: RunCounters = Field(default_factory=RunCounters)
    devices: list[DeviceSummary] = Field(default_factory=list)

    def device(self, device_id: str) -> DeviceSummary:
        for dev in self.devices:
            if dev.device_id == device_id:
                return dev
        raise KeyError(device_id)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Return a plain ``dict`` representation (JSON-safe types)."""
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        """Return a compact JSON string."""
        return self.model_dump_json()
