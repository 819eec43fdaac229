"""Exception types raised by the simulator.

``ConfigError`` is fatal only to the call that raised it.
``RegistrationError`` and ``LedgerCallError`` are non-fatal: the scheduler
logs them, counts them, and keeps going.
"""

from __future__ import annotations

__all__ = [
    "ConfigError",
    "LedgerCallError",
    "RegistrationError",
    "SimulatorError",
]


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class ConfigError(SimulatorError):
    """Unknown template, duplicate device id, or unknown identity reference."""


class RegistrationError(SimulatorError):
    """The ledger rejected (or failed) a device registration."""

    def __init__(self, device_id: str, reason: str) -> None:
        super().__init__(f"Registration of '{device_id}' failed: {reason}")
        self.device_id = device_id
        self.reason = reason


class LedgerCallError(SimulatorError):
    """A sensor update call to the ledger failed."""

    def __init__(self, device_id: str, sensors: list[str], reason: str) -> None:
        super().__init__(f"Update of {device_id} ({', '.join(sensors)}) failed: {reason}")
        self.device_id = device_id
        self.sensors = sensors
        self.reason = reason
