"""Tests for iot_ledger_sim.ledger.factory – config-driven adapter creation."""

from __future__ import annotations

import pytest

import iot_ledger_sim.ledger as ledger_pkg
from iot_ledger_sim.ledger import factory
from iot_ledger_sim.ledger.factory import create_ledger, register_ledger
from iot_ledger_sim.ledger.memory import InMemoryLedger


class TestCreateLedger:
    def test_default_is_memory(self) -> None:
        assert isinstance(create_ledger(), InMemoryLedger)
        assert isinstance(create_ledger({}), InMemoryLedger)

    def test_memory_with_options(self) -> None:
        ledger = create_ledger({"type": "Memory", "latency_s": 0.5, "identities": ["0x1"]})
        assert isinstance(ledger, InMemoryLedger)
        assert ledger.latency_s == 0.5

    def test_config_not_mutated(self) -> None:
        cfg = {"type": "memory", "latency_s": 0.1}
        create_ledger(cfg)
        assert cfg == {"type": "memory", "latency_s": 0.1}

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown ledger type"):
            create_ledger({"type": "carrier-pigeon"})

    def test_bad_option_raises_type_error(self) -> None:
        with pytest.raises(TypeError):
            create_ledger({"type": "memory", "colour": "blue"})


class TestRegisterLedger:
    def test_custom_adapter(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(factory, "_LEDGER_REGISTRY", dict(factory._LEDGER_REGISTRY))
        register_ledger(" Sandbox ", "iot_ledger_sim.ledger.memory", "InMemoryLedger")
        assert isinstance(create_ledger({"type": "sandbox"}), InMemoryLedger)


class TestPackageExports:
    def test_lazy_attribute_unknown(self) -> None:
        with pytest.raises(AttributeError):
            ledger_pkg.DoesNotExist  # noqa: B018
