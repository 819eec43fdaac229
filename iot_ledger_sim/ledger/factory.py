"""Ledger factory – creates ledger clients from configuration dicts.

Used by the config-driven (YAML) mode::

    ledger:
      type: http
      base_url: http://localhost:8080/api
      timeout_s: 10
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from iot_ledger_sim.ledger.base import LedgerClient

__all__ = ["create_ledger", "register_ledger"]

logger = logging.getLogger("iot_ledger_sim.ledger.factory")

# Registry of type names → (module_path, class_name)
_LEDGER_REGISTRY: dict[str, tuple[str, str]] = {
    "memory": ("iot_ledger_sim.ledger.memory", "InMemoryLedger"),
    "http": ("iot_ledger_sim.ledger.http", "HttpLedgerClient"),
}


def create_ledger(config: dict[str, Any] | None = None) -> LedgerClient:
    """Create a ledger client from a configuration dict.

    The ``"type"`` key selects the adapter (default ``"memory"``); all other
    keys are forwarded to its constructor.  The client is not yet connected.
    """
    config = dict(config or {})
    ledger_type = str(config.pop("type", "memory")).lower().strip()

    if ledger_type not in _LEDGER_REGISTRY:
        raise ValueError(
            f"Unknown ledger type '{ledger_type}'.  "
            f"Available: {sorted(_LEDGER_REGISTRY)}"
        )

    module_path, class_name = _LEDGER_REGISTRY[ledger_type]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)

    logger.debug("Creating %s with config: %s", class_name, config)
    return cls(**config)


def register_ledger(name: str, module_path: str, class_name: str) -> None:
    """Register a custom ledger adapter for config-driven instantiation.

    Example::

        register_ledger("fabric", "mypackage.ledgers", "FabricLedger")
    """
    _LEDGER_REGISTRY[name.lower().strip()] = (module_path, class_name)
