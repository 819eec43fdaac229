"""Ledger client abstraction.

Provides:
- ``LedgerClient`` - abstract base class every ledger adapter implements.
- ``LedgerResult`` - success/failure outcome of a write call.

Write operations report failure through :class:`LedgerResult` instead of
raising.  The scheduler still guards every call, so an adapter that raises
is treated the same as one that returns ``LedgerResult.failure(...)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

__all__ = ["LedgerClient", "LedgerResult"]


class LedgerResult(BaseModel):
    """Outcome of a ledger write.

    Attributes:
        ok: ``True`` when the ledger accepted the call.
        tx_hash: Transaction reference, when the ledger returns one.
        error: Failure description when ``ok`` is ``False``.
    """

    ok: bool
    tx_hash: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, tx_hash: str | None = None) -> LedgerResult:
        return cls(ok=True, tx_hash=tx_hash)

    @classmethod
    def failure(cls, error: str) -> LedgerResult:
        return cls(ok=False, error=error)


class LedgerClient(ABC):
    """Abstract base class for ledger adapters.

    Concrete adapters implement the register/update/query calls; ``connect``
    and ``close`` default to no-ops.  Every call may suspend for an
    unbounded but finite time.  ``update_batch`` is all-or-nothing: a
    failure means none of its sensors were applied.
    """

    async def connect(self) -> None:
        """Open connections / resources."""

    async def close(self) -> None:
        """Release connections / resources."""

    async def __aenter__(self) -> LedgerClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @abstractmethod
    async def register(self, identity: str, device_id: str, location: str) -> LedgerResult:
        """Register *device_id* at *location*, owned by *identity*."""

    @abstractmethod
    async def update_one(self, identity: str, sensor: str, value: str) -> LedgerResult:
        """Write a single sensor value."""

    @abstractmethod
    async def update_batch(self, identity: str, sensors: list[str], values: list[str]) -> LedgerResult:
        """Write several sensor values in one call (``sensors[i]`` → ``values[i]``)."""

    @abstractmethod
    async def query_device_active(self, identity: str) -> bool:
        """Return ``True`` if *identity* already has an active registration."""

    @abstractmethod
    async def query_device_count(self) -> int:
        """Return the number of devices registered on the ledger."""

    async def list_identities(self) -> list[str]:
        """Return the identities (accounts) this ledger offers, if any."""
        return []
