"""Configuration loader for YAML simulation files.

Parses YAML files with the following top-level sections::

    simulation:        # run settings (duration_s, interval_s, seed, …)
    ledger:            # ledger adapter config, passed to the ledger factory
    identities:        # optional list of accounts; fetched from the ledger if absent
    custom_templates:  # optional extra device templates
    devices:           # devices to create before the run

Example:

.. code-block:: yaml

    simulation:
      duration_s: 120
      interval_s: 8
      seed: 42

    ledger:
      type: http
      base_url: http://localhost:8080/api

    custom_templates:
      - name: cold_room
        sensors:
          temperature: {kind: continuous, min: -25, max: -15, step: 0.2}
          door: {kind: discrete, values: [closed, open], probability: 0.05}

    devices:
      - {id: living-room-weather, template: weather_station, location: Living Room, identity: 0}
      - {id: freezer-1, template: cold_room, location: Kitchen, identity: 1}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from iot_ledger_sim.errors import ConfigError
from iot_ledger_sim.ledger.base import LedgerClient
from iot_ledger_sim.ledger.factory import create_ledger
from iot_ledger_sim.models import SimulationOptions
from iot_ledger_sim.registry import DeviceRegistry
from iot_ledger_sim.scheduler import SimulationScheduler
from iot_ledger_sim.templates import DeviceTemplate, TemplateName, build_catalog

__all__ = [
    "SCENARIOS",
    "DeviceSpec",
    "SimulationYAMLConfig",
    "load_yaml_config",
    "scenario_config",
]

logger = logging.getLogger("iot_ledger_sim.config")


class DeviceSpec(BaseModel):
    """One device entry: ``identity`` is an account string or an index."""

    id: str
    template: str
    location: str = "Unknown Location"
    identity: str | int = 0


class SimulationYAMLConfig(BaseModel):
    """Parsed representation of the full YAML configuration.

    Attributes:
        duration_s: Run duration (seconds).
        interval_s: Tick interval (seconds).
        seed: Seed for the pattern generator; ``None`` for a random run.
        max_batch_size: Cap on sensors per batch call (``None`` = no cap).
        log_level: Logging level string.
        ledger: Raw dict passed to the ledger factory.
        identities: Accounts to use instead of asking the ledger.
        custom_templates: Extra :class:`DeviceTemplate` definitions.
        devices: Devices to create.
    """

    duration_s: float = 60.0
    interval_s: float = 5.0
    seed: int | None = None
    max_batch_size: int | None = None
    log_level: str = "INFO"
    ledger: dict[str, Any] = Field(default_factory=lambda: {"type": "memory"})
    identities: list[str] | None = None
    custom_templates: list[DeviceTemplate] = Field(default_factory=list)
    devices: list[DeviceSpec] = Field(default_factory=list)

    def options(self, **overrides: Any) -> SimulationOptions:
        """Return run options, with non-``None`` *overrides* applied."""
        data: dict[str, Any] = {
            "duration_s": self.duration_s,
            "interval_s": self.interval_s,
            "max_batch_size": self.max_batch_size,
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return SimulationOptions.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid simulation options: {exc}") from exc

    def build_scheduler(self, ledger: LedgerClient | None = None) -> SimulationScheduler:
        """Create a scheduler for this config (devices are added separately).

        Devices may reference identities by index, which requires the
        ledger's account list; call :meth:`create_devices` after
        :meth:`SimulationScheduler.connect`.
        """
        registry = DeviceRegistry(catalog=build_catalog(self.custom_templates), identities=self.identities)
        if ledger is None:
            try:
                ledger = create_ledger(self.ledger)
            except (ValueError, TypeError) as exc:
                raise ConfigError(f"Invalid ledger configuration: {exc}") from exc
        return SimulationScheduler(ledger, registry, seed=self.seed)

    def create_devices(self, scheduler: SimulationScheduler) -> None:
        for spec in self.devices:
            scheduler.create_device(spec.id, spec.template, spec.location, spec.identity)


# ---------------------------------------------------------------------------
# Built-in scenarios
# ---------------------------------------------------------------------------

SCENARIOS: dict[str, dict[str, Any]] = {
    "smart_home": {
        "duration_s": 120.0,
        "interval_s": 8.0,
        "devices": [
            DeviceSpec(id="living-room-weather", template=TemplateName.WEATHER_STATION, location="Living Room", identity=0),
            DeviceSpec(id="bedroom-weather", template=TemplateName.WEATHER_STATION, location="Bedroom", identity=1),
            DeviceSpec(id="security-system", template=TemplateName.SECURITY_SENSOR, location="Main Entrance", identity=2),
            DeviceSpec(id="air-quality-monitor", template=TemplateName.AIR_QUALITY, location="Kitchen", identity=2),
        ],
    },
    "industrial": {
        "duration_s": 180.0,
        "interval_s": 6.0,
        "devices": [
            DeviceSpec(id="factory-weather", template=TemplateName.WEATHER_STATION, location="Factory Floor", identity=0),
            DeviceSpec(id="machine-1-power", template=TemplateName.SMART_METER, location="Machine 1", identity=1),
            DeviceSpec(id="machine-2-power", template=TemplateName.SMART_METER, location="Machine 2", identity=2),
            DeviceSpec(id="air-quality-factory", template=TemplateName.AIR_QUALITY, location="Production Area", identity=0),
            DeviceSpec(id="security-factory", template=TemplateName.SECURITY_SENSOR, location="Factory Entrance", identity=1),
        ],
    },
    "custom": {
        "duration_s": 60.0,
        "interval_s": 5.0,
        "devices": [
            DeviceSpec(id="custom-device-1", template=TemplateName.WEATHER_STATION, location="Test Location", identity=0),
            DeviceSpec(id="custom-device-2", template=TemplateName.SECURITY_SENSOR, location="Test Security", identity=1),
        ],
    },
}


def scenario_config(name: str, **overrides: Any) -> SimulationYAMLConfig:
    """Return the configuration of a built-in scenario."""
    key = name.lower().strip().replace("-", "_")
    if key not in SCENARIOS:
        raise ConfigError(f"Unknown scenario '{name}'. Available: {sorted(SCENARIOS)}")
    data = {**SCENARIOS[key], **{k: v for k, v in overrides.items() if v is not None}}
    return SimulationYAMLConfig(**data)


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


def load_yaml_config(path: str | Path) -> SimulationYAMLConfig:
    """Load and validate a YAML configuration file.

    Raises ``FileNotFoundError`` for a missing file and
    :class:`ConfigError` for malformed content.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r") as fh:
        try:
            raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")

    # --- simulation section ---
    sim_section = raw.get("simulation") or {}
    data: dict[str, Any] = {
        key: sim_section[key]
        for key in ("duration_s", "interval_s", "seed", "max_batch_size", "log_level")
        if key in sim_section
    }

    # --- ledger / identities / templates / devices ---
    if raw.get("ledger"):
        data["ledger"] = raw["ledger"]
    if raw.get("identities") is not None:
        data["identities"] = [str(i) for i in raw["identities"]]
    data["custom_templates"] = raw.get("custom_templates") or []
    data["devices"] = raw.get("devices") or []

    try:
        config = SimulationYAMLConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc

    logger.info(
        "Loaded config: %d devices, %d custom templates, ledger=%s",
        len(config.devices),
        len(config.custom_templates),
        config.ledger.get("type", "memory"),
    )
    return config
