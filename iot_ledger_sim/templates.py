"""Device template catalog.

A template bundles a device's sensor list with the pattern that drives each
sensor.  The built-in set is closed (:class:`TemplateName`); callers may pass
an extra catalog of custom templates, which is validated once when the
registry is built, never at tick time.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from iot_ledger_sim.errors import ConfigError
from iot_ledger_sim.patterns import ContinuousPattern, DiscretePattern, PatternSpec

__all__ = [
    "TEMPLATES",
    "DeviceTemplate",
    "TemplateName",
    "build_catalog",
    "get_template",
]


class TemplateName(StrEnum):
    """Built-in device templates."""

    WEATHER_STATION = "weather_station"
    SECURITY_SENSOR = "security_sensor"
    AIR_QUALITY = "air_quality"
    SMART_METER = "smart_meter"


class DeviceTemplate(BaseModel):
    """Named bundle of sensors; the sensor order is the dict order."""

    model_config = {"frozen": True}

    name: str
    description: str = ""
    sensors: dict[str, PatternSpec] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_name(self) -> DeviceTemplate:
        if not self.name.strip():
            raise ValueError("template name must not be empty")
        return self

    @property
    def sensor_names(self) -> list[str]:
        return list(self.sensors)


def _c(lo: float, hi: float, step: float, monotonic: bool = False) -> ContinuousPattern:
    return ContinuousPattern(min=lo, max=hi, step=step, monotonic=monotonic)


def _d(values: list[str], probability: float) -> DiscretePattern:
    return DiscretePattern(values=values, probability=probability)


TEMPLATES: dict[str, DeviceTemplate] = {
    TemplateName.WEATHER_STATION: DeviceTemplate(
        name=TemplateName.WEATHER_STATION,
        description="Temperature, humidity, pressure, light",
        sensors={
            "temperature": _c(15, 35, 0.5),
            "humidity": _c(30, 80, 2),
            "pressure": _c(980, 1020, 1),
            "light": _c(0, 1000, 50),
        },
    ),
    TemplateName.SECURITY_SENSOR: DeviceTemplate(
        name=TemplateName.SECURITY_SENSOR,
        description="Motion, door, window, battery",
        sensors={
            "motion": _d(["detected", "none"], 0.1),
            "door": _d(["open", "closed"], 0.05),
            "window": _d(["open", "closed"], 0.03),
            "battery": _c(0, 100, 0.1),
        },
    ),
    TemplateName.AIR_QUALITY: DeviceTemplate(
        name=TemplateName.AIR_QUALITY,
        description="CO2, PM2.5, PM10, VOC",
        sensors={
            "co2": _c(400, 2000, 10),
            "pm2_5": _c(0, 100, 2),
            "pm10": _c(0, 150, 3),
            "voc": _c(0, 500, 5),
        },
    ),
    TemplateName.SMART_METER: DeviceTemplate(
        name=TemplateName.SMART_METER,
        description="Power, voltage, current, energy",
        sensors={
            "power": _c(100, 5000, 50),
            "voltage": _c(220, 240, 1),
            "current": _c(0, 25, 1),
            # Cumulative counter; the large max keeps it effectively unbounded.
            "energy": _c(0, 999_999, 1, monotonic=True),
        },
    ),
}


def build_catalog(custom: list[DeviceTemplate] | None = None) -> dict[str, DeviceTemplate]:
    """Return the built-in catalog extended with *custom* templates.

    Raises :class:`ConfigError` when a custom template reuses a name.
    """
    catalog = dict(TEMPLATES)
    for tpl in custom or []:
        if tpl.name in catalog:
            raise ConfigError(f"Template '{tpl.name}' is already defined")
        catalog[tpl.name] = tpl
    return catalog


def get_template(name: str, catalog: Mapping[str, DeviceTemplate] | None = None) -> DeviceTemplate:
    """Look up a template by name, raising :class:`ConfigError` if unknown."""
    catalog = TEMPLATES if catalog is None else catalog
    try:
        return catalog[name]
    except KeyError:
        raise ConfigError(
            f"Device template '{name}' not found. Available: {sorted(catalog)}"
        ) from None
