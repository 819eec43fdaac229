"""HTTP ledger client - talks to a JSON gateway in front of the contract.

Requires the ``http`` extra::

    pip install iot-ledger-simulator[http]

Endpoints used (relative to ``base_url``)::

    GET  /accounts                 -> ["0x...", ...]
    POST /devices                  {"from", "device_id", "location"}
    GET  /devices/count            -> {"count": n}
    GET  /devices/{identity}       -> {"device_id", "location", "is_active", ...}
    POST /sensors                  {"from", "sensor", "value"}
    POST /sensors/batch            {"from", "sensors": [...], "values": [...]}

Write endpoints answer ``{"tx_hash": "0x..."}`` on success.  Signing and
gas handling stay behind the gateway.
"""

from __future__ import annotations

import logging
from typing import Any

from iot_ledger_sim.ledger.base import LedgerClient, LedgerResult

__all__ = ["HttpLedgerClient"]

logger = logging.getLogger("iot_ledger_sim.ledger.http")

try:
    import httpx

    HTTPX_AVAILABLE = True
except ImportError:
    HTTPX_AVAILABLE = False


class HttpLedgerClient(LedgerClient):
    """Ledger adapter issuing JSON requests through ``httpx.AsyncClient``.

    Parameters:
        base_url: Gateway root, e.g. ``"http://localhost:8080/api"``.
        headers: Extra HTTP headers (e.g. ``{"Authorization": "Bearer …"}``).
        timeout_s: Per-request timeout in seconds.
    """

    def __init__(
        self,
        *,
        base_url: str = "http://localhost:8080",
        headers: dict[str, str] | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        if not HTTPX_AVAILABLE:
            raise ImportError(
                "httpx is required for HttpLedgerClient.  Install with: pip install iot-ledger-simulator[http]"
            )
        self._base_url = base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._timeout = timeout_s
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers=self._headers,
        )
        logger.info("HttpLedgerClient ready - gateway: %s", self._base_url)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("HttpLedgerClient closed")

    # -- writes ---------------------------------------------------------

    async def register(self, identity: str, device_id: str, location: str) -> LedgerResult:
        return await self._write("/devices", {"from": identity, "device_id": device_id, "location": location})

    async def update_one(self, identity: str, sensor: str, value: str) -> LedgerResult:
        return await self._write("/sensors", {"from": identity, "sensor": sensor, "value": value})

    async def update_batch(self, identity: str, sensors: list[str], values: list[str]) -> LedgerResult:
        return await self._write(
            "/sensors/batch",
            {"from": identity, "sensors": list(sensors), "values": list(values)},
        )

    # -- queries --------------------------------------------------------

    async def query_device_active(self, identity: str) -> bool:
        resp = await self._require_client().get(f"/devices/{identity}")
        if resp.status_code == 404:
            return False
        resp.raise_for_status()
        return bool(resp.json().get("is_active", False))

    async def query_device_count(self) -> int:
        resp = await self._require_client().get("/devices/count")
        resp.raise_for_status()
        return int(resp.json()["count"])

    async def list_identities(self) -> list[str]:
        resp = await self._require_client().get("/accounts")
        resp.raise_for_status()
        return [str(a) for a in resp.json()]

    # -- internal -------------------------------------------------------

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("HttpLedgerClient is not connected")
        return self._client

    async def _write(self, path: str, payload: dict[str, Any]) -> LedgerResult:
        client = self._require_client()
        try:
            resp = await client.post(path, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("POST %s failed: %s", path, exc)
            return LedgerResult.failure(str(exc))

        body = resp.json() if resp.content else {}
        logger.debug("POST %s - HTTP %d", path, resp.status_code)
        return LedgerResult.success(body.get("tx_hash"))
