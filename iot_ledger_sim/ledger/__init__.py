"""Ledger adapters for the IoT Ledger Simulator.

Import the adapter you need from this package::

    from iot_ledger_sim.ledger import InMemoryLedger, HttpLedgerClient
"""

from __future__ import annotations

import importlib
from typing import Any

from iot_ledger_sim.ledger.base import LedgerClient, LedgerResult
from iot_ledger_sim.ledger.factory import create_ledger, register_ledger
from iot_ledger_sim.ledger.memory import InMemoryLedger

__all__ = [
    "InMemoryLedger",
    "LedgerClient",
    "LedgerResult",
    "create_ledger",
    "register_ledger",
]


def __getattr__(name: str) -> Any:
    """Lazy-import adapters that require optional dependencies."""
    if name == "HttpLedgerClient":
        mod = importlib.import_module("iot_ledger_sim.ledger.http")
        return getattr(mod, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
