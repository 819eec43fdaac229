"""Tests for iot_ledger_sim.templates – built-in catalog and lookups."""

from __future__ import annotations

import pytest

from iot_ledger_sim.errors import ConfigError
from iot_ledger_sim.patterns import ContinuousPattern, DiscretePattern
from iot_ledger_sim.templates import (
    TEMPLATES,
    DeviceTemplate,
    TemplateName,
    build_catalog,
    get_template,
)


class TestCatalog:
    """Shape of the built-in catalog."""

    def test_catalog_matches_enum(self) -> None:
        assert set(TEMPLATES) == set(TemplateName)

    def test_every_template_has_four_sensors(self) -> None:
        for name, tpl in TEMPLATES.items():
            assert len(tpl.sensor_names) == 4, name

    def test_weather_station_sensors(self) -> None:
        tpl = TEMPLATES[TemplateName.WEATHER_STATION]
        assert tpl.sensor_names == ["temperature", "humidity", "pressure", "light"]

    def test_security_sensor_mixes_kinds(self) -> None:
        tpl = TEMPLATES[TemplateName.SECURITY_SENSOR]
        assert isinstance(tpl.sensors["motion"], DiscretePattern)
        assert isinstance(tpl.sensors["battery"], ContinuousPattern)

    def test_energy_is_monotonic(self) -> None:
        energy = TEMPLATES[TemplateName.SMART_METER].sensors["energy"]
        assert isinstance(energy, ContinuousPattern)
        assert energy.monotonic is True


class TestLookup:
    def test_lookup_by_plain_string(self) -> None:
        assert get_template("air_quality").name == "air_quality"

    def test_unknown_template_raises(self) -> None:
        with pytest.raises(ConfigError, match="not found"):
            get_template("toaster")

    def test_custom_catalog(self) -> None:
        custom = DeviceTemplate(
            name="cold_room",
            sensors={"temperature": ContinuousPattern(min=-25, max=-15, step=0.2)},
        )
        catalog = build_catalog([custom])
        assert get_template("cold_room", catalog) is custom
        assert get_template("smart_meter", catalog) is TEMPLATES[TemplateName.SMART_METER]

    def test_custom_name_clash_raises(self) -> None:
        clash = DeviceTemplate(
            name="weather_station",
            sensors={"temperature": ContinuousPattern(min=0, max=1, step=0.1)},
        )
        with pytest.raises(ConfigError, match="already defined"):
            build_catalog([clash])
