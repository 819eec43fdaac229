"""Device registry - in-memory store of devices and their last-known state.

No network access happens here; the scheduler is the only component that
talks to the ledger.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping

from iot_ledger_sim.errors import ConfigError
from iot_ledger_sim.models import Device
from iot_ledger_sim.patterns import initial_value
from iot_ledger_sim.templates import DeviceTemplate, get_template

__all__ = ["DeviceRegistry"]

logger = logging.getLogger("iot_ledger_sim.registry")


class DeviceRegistry:
    """Keyed store of :class:`Device` records.

    Parameters:
        catalog:
            Template name → :class:`DeviceTemplate`.  Defaults to the
            built-in catalog.
        identities:
            Known ledger identities (accounts).  When set, ``create`` accepts
            either one of these strings or an integer index into the list.
            When ``None``, any non-empty identity string is accepted.
    """

    def __init__(
        self,
        catalog: Mapping[str, DeviceTemplate] | None = None,
        identities: list[str] | None = None,
    ) -> None:
        self._catalog = catalog
        self._identities: list[str] | None = list(identities) if identities is not None else None
        self._devices: dict[str, Device] = {}

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    @property
    def identities(self) -> list[str] | None:
        return None if self._identities is None else list(self._identities)

    def set_identities(self, identities: list[str]) -> None:
        self._identities = list(identities)
        logger.info("Registry knows %d identities", len(self._identities))

    def _resolve_identity(self, identity: str | int) -> str:
        if isinstance(identity, bool):
            raise ConfigError(f"Invalid identity reference: {identity!r}")
        if isinstance(identity, int):
            if self._identities is None:
                raise ConfigError(f"Identity index {identity} given but no identities are loaded")
            if not 0 <= identity < len(self._identities):
                raise ConfigError(
                    f"Identity index {identity} not available ({len(self._identities)} identities)"
                )
            return self._identities[identity]
        if not identity:
            raise ConfigError("Identity must not be empty")
        if self._identities is not None and identity not in self._identities:
            raise ConfigError(f"Unknown identity '{identity}'")
        return identity

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def create(self, device_id: str, template: str, location: str, identity: str | int) -> Device:
        """Create a device from *template*.  Nothing is sent to the ledger.

        Raises :class:`ConfigError` for an unknown template, a duplicate
        id, or an unknown identity; the registry is left unchanged.
        """
        if not device_id:
            raise ConfigError("Device id must not be empty")
        if device_id in self._devices:
            raise ConfigError(f"Device '{device_id}' already exists")
        tpl = get_template(template, self._catalog)
        account = self._resolve_identity(identity)

        device = Device(
            device_id=device_id,
            template=str(tpl.name),
            location=location,
            identity=account,
            sensors=tpl.sensor_names,
            patterns=dict(tpl.sensors),
            last_values={name: initial_value(spec) for name, spec in tpl.sensors.items()},
        )
        self._devices[device_id] = device
        logger.info("Created %s device: %s at %s", tpl.name, device_id, location)
        return device

    def get(self, device_id: str) -> Device:
        try:
            return self._devices[device_id]
        except KeyError:
            raise ConfigError(f"Device '{device_id}' not found") from None

    def all(self) -> list[Device]:
        return list(self._devices.values())

    def ids(self) -> list[str]:
        return list(self._devices)

    def set_last_value(self, device_id: str, sensor: str, value: str) -> None:
        device = self.get(device_id)
        if sensor not in device.last_values:
            raise ConfigError(f"Device '{device_id}' has no sensor '{sensor}'")
        device.last_values[sensor] = value

    def apply_update(self, device_id: str, values: dict[str, str]) -> None:
        """Record a successful ledger update: new values plus one more update."""
        device = self.get(device_id)
        unknown = [sensor for sensor in values if sensor not in device.last_values]
        if unknown:
            raise ConfigError(f"Device '{device_id}' has no sensor(s) {', '.join(unknown)}")
        device.last_values.update(values)
        device.update_count += 1

    def mark_registered(self, device_id: str) -> None:
        self.get(device_id).registered = True

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices.values()))
