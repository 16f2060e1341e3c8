"""Transaction broadcast — Jito block-engine relays first, public RPC fallback.

One submit() call is exactly one pass over the relay list in priority order.
The first relay that accepts the bundle (HTTP 200 and no JSON-RPC error)
wins; acceptance means queued, not landed. If every relay fails, the
transaction goes to the public RPC with skipPreflight and a bounded
maxRetries. If that fails too, BroadcastError is raised and nothing else is
retried here.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

import httpx
from loguru import logger
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

VIA_JITO = "jito"
VIA_RPC = "rpc"


class BroadcastError(Exception):
    """Every relay and the public RPC fallback rejected the transaction."""


@dataclass(frozen=True)
class TransactionHandle:
    """Accepted submission. `signature` is the tx's own first signature."""

    signature: str
    via: str
    endpoint: str
    bundle_id: str | None = None


class BroadcastRelay:
    """Prioritized submission across private relays and the public network."""

    def __init__(
        self,
        *,
        relay_endpoints: list[str],
        rpc_url: str,
        relay_timeout: float = 2.0,
        rpc_timeout: float = 10.0,
        max_retries: int = 5,
        auth_key: str = "",
    ) -> None:
        if not rpc_url:
            raise ValueError("RPC URL is empty")
        self._relays = list(relay_endpoints)
        self._rpc_url = rpc_url
        self._relay_timeout = relay_timeout
        self._max_retries = max_retries
        headers = {"Content-Type": "application/json"}
        if auth_key:
            headers["x-jito-auth"] = auth_key
        self._relay_http = httpx.AsyncClient(timeout=relay_timeout, headers=headers)
        self._rpc_http = httpx.AsyncClient(timeout=rpc_timeout)

    @property
    def relay_endpoints(self) -> list[str]:
        return list(self._relays)

    async def submit(self, tx: VersionedTransaction) -> TransactionHandle:
        """Submit a signed transaction. Raises BroadcastError when all paths fail."""
        tx_b64 = base64.b64encode(bytes(tx)).decode("ascii")
        signature = str(tx.signatures[0])

        for endpoint in self._relays:
            bundle_id = await self._send_bundle(endpoint, tx_b64)
            if bundle_id is not None:
                logger.info(f"[JITO] Bundle accepted by {_host(endpoint)} sig={signature[:16]}")
                return TransactionHandle(
                    signature=signature,
                    via=VIA_JITO,
                    endpoint=endpoint,
                    bundle_id=bundle_id or None,
                )

        if self._relays:
            logger.warning("[JITO] All relays failed, falling back to public RPC")

        rpc_sig = await self._send_transaction(tx_b64)
        if rpc_sig != signature:
            logger.warning(f"[JITO] RPC returned signature {rpc_sig[:16]} != {signature[:16]}")
        logger.info(f"[JITO] Sent via public RPC sig={signature[:16]}")
        return TransactionHandle(signature=signature, via=VIA_RPC, endpoint=self._rpc_url)

    async def _send_bundle(self, endpoint: str, tx_b64: str) -> str | None:
        """POST sendBundle to one relay. Returns the bundle id ("" if absent) or None."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendBundle",
            "params": [[tx_b64], {"encoding": "base64"}],
        }
        try:
            resp = await self._relay_http.post(endpoint, json=payload, timeout=self._relay_timeout)
        except httpx.HTTPError as e:
            logger.warning(f"[JITO] {_host(endpoint)} failed: {type(e).__name__}")
            return None

        if resp.status_code != 200:
            logger.warning(f"[JITO] {_host(endpoint)} HTTP {resp.status_code}")
            return None

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if isinstance(data, dict) and data.get("error"):
            logger.warning(f"[JITO] {_host(endpoint)} rejected: {data['error']}")
            return None

        result = data.get("result") if isinstance(data, dict) else None
        return str(result) if result else ""

    async def _send_transaction(self, tx_b64: str) -> str:
        """Public sendTransaction with skipPreflight. Raises BroadcastError."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendTransaction",
            "params": [
                tx_b64,
                {
                    "encoding": "base64",
                    "skipPreflight": True,
                    "maxRetries": self._max_retries,
                },
            ],
        }
        try:
            resp = await self._rpc_http.post(self._rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise BroadcastError(f"RPC fallback failed: {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise BroadcastError(f"RPC fallback HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise BroadcastError("RPC fallback returned non-JSON") from e

        if not isinstance(data, dict):
            raise BroadcastError("RPC fallback returned unexpected payload")
        if "error" in data:
            error = data["error"]
            if isinstance(error, dict):
                raise BroadcastError(
                    f"RPC fallback error {error.get('code', '?')}: {error.get('message', error)}"
                )
            raise BroadcastError(f"RPC fallback error: {error}")

        result = data.get("result")
        if not result:
            raise BroadcastError("RPC fallback returned no signature")
        return str(result)

    async def close(self) -> None:
        await self._relay_http.aclose()
        await self._rpc_http.aclose()


def _host(url: str) -> str:
    return httpx.URL(url).host
