"""Tests for BroadcastRelay — relay priority, RPC fallback, error reporting.

All HTTP calls are mocked. No real block-engine or RPC requests are made.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from sniper.trading.broadcast import VIA_JITO, VIA_RPC, BroadcastError, BroadcastRelay

RELAY_A = "https://ny.mainnet.block-engine.jito.wtf/api/v1/bundles"
RELAY_B = "https://amsterdam.mainnet.block-engine.jito.wtf/api/v1/bundles"
RPC_URL = "https://mainnet.helius-rpc.com/?api-key=test"


def _response(status: int = 200, payload=None) -> MagicMock:
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def relay() -> BroadcastRelay:
    r = BroadcastRelay(relay_endpoints=[RELAY_A, RELAY_B], rpc_url=RPC_URL, auth_key="secret")
    r._relay_http = AsyncMock(spec=httpx.AsyncClient)
    r._rpc_http = AsyncMock(spec=httpx.AsyncClient)
    return r


def _posted_urls(mock: AsyncMock) -> list[str]:
    return [call.args[0] for call in mock.call_args_list]


# ── Construction ───────────────────────────────────────────────────────


def test_empty_rpc_url_rejected():
    with pytest.raises(ValueError, match="RPC URL is empty"):
        BroadcastRelay(relay_endpoints=[RELAY_A], rpc_url="")


def test_auth_header_set_on_relay_client():
    r = BroadcastRelay(relay_endpoints=[RELAY_A], rpc_url=RPC_URL, auth_key="secret")
    assert r._relay_http.headers["x-jito-auth"] == "secret"


# ── Relay path ─────────────────────────────────────────────────────────


class TestRelayPriority:
    async def test_first_relay_accepts(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        relay._relay_http.post = AsyncMock(return_value=_response(payload={"result": "bundle-1"}))

        handle = await relay.submit(signed_tx)

        assert handle.via == VIA_JITO
        assert handle.endpoint == RELAY_A
        assert handle.bundle_id == "bundle-1"
        assert handle.signature == str(signed_tx.signatures[0])
        assert _posted_urls(relay._relay_http.post) == [RELAY_A]
        relay._rpc_http.post.assert_not_called()

    async def test_second_relay_after_first_fails(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        relay._relay_http.post = AsyncMock(
            side_effect=[httpx.ReadTimeout("slow"), _response(payload={"result": "bundle-2"})]
        )

        handle = await relay.submit(signed_tx)

        assert handle.endpoint == RELAY_B
        assert _posted_urls(relay._relay_http.post) == [RELAY_A, RELAY_B]
        relay._rpc_http.post.assert_not_called()

    async def test_json_rpc_error_counts_as_rejection(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        relay._relay_http.post = AsyncMock(
            side_effect=[
                _response(payload={"error": {"code": -32097, "message": "rate limited"}}),
                _response(payload={"result": "bundle-2"}),
            ]
        )

        handle = await relay.submit(signed_tx)

        assert handle.endpoint == RELAY_B

    async def test_accepted_without_bundle_id(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        relay._relay_http.post = AsyncMock(return_value=_response(payload=ValueError("empty")))

        handle = await relay.submit(signed_tx)

        assert handle.via == VIA_JITO
        assert handle.bundle_id is None

    async def test_send_bundle_payload(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        relay._relay_http.post = AsyncMock(return_value=_response(payload={"result": "b"}))

        await relay.submit(signed_tx)

        body = relay._relay_http.post.call_args.kwargs["json"]
        assert body["method"] == "sendBundle"
        assert len(body["params"][0]) == 1
        assert body["params"][1] == {"encoding": "base64"}


# ── RPC fallback ───────────────────────────────────────────────────────


class TestRpcFallback:
    async def test_fallback_only_after_all_relays_fail(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        sig = str(signed_tx.signatures[0])
        relay._relay_http.post = AsyncMock(return_value=_response(status=429, payload={}))
        relay._rpc_http.post = AsyncMock(return_value=_response(payload={"result": sig}))

        handle = await relay.submit(signed_tx)

        assert handle.via == VIA_RPC
        assert handle.signature == sig
        assert handle.endpoint == RPC_URL
        assert _posted_urls(relay._relay_http.post) == [RELAY_A, RELAY_B]
        params = relay._rpc_http.post.call_args.kwargs["json"]["params"][1]
        assert params["skipPreflight"] is True
        assert params["maxRetries"] == 5

    async def test_no_relays_goes_straight_to_rpc(self, signed_tx: VersionedTransaction):
        r = BroadcastRelay(relay_endpoints=[], rpc_url=RPC_URL)
        r._rpc_http = AsyncMock(spec=httpx.AsyncClient)
        r._rpc_http.post = AsyncMock(return_value=_response(payload={"result": "sig"}))

        handle = await r.submit(signed_tx)

        assert handle.via == VIA_RPC

    async def test_everything_fails_raises(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        relay._relay_http.post = AsyncMock(side_effect=httpx.ConnectError("down"))
        relay._rpc_http.post = AsyncMock(
            return_value=_response(payload={"error": {"code": -32002, "message": "Blockhash not found"}})
        )

        with pytest.raises(BroadcastError, match="Blockhash not found"):
            await relay.submit(signed_tx)

        # One pass only
        assert relay._relay_http.post.await_count == 2
        assert relay._rpc_http.post.await_count == 1

    async def test_rpc_http_failure_raises(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        relay._relay_http.post = AsyncMock(side_effect=httpx.ConnectError("down"))
        relay._rpc_http.post = AsyncMock(return_value=_response(status=503, payload={}))

        with pytest.raises(BroadcastError, match="HTTP 503"):
            await relay.submit(signed_tx)

    async def test_rpc_without_result_raises(self, relay: BroadcastRelay, signed_tx: VersionedTransaction):
        relay._relay_http.post = AsyncMock(side_effect=httpx.ConnectError("down"))
        relay._rpc_http.post = AsyncMock(return_value=_response(payload={"jsonrpc": "2.0"}))

        with pytest.raises(BroadcastError, match="no signature"):
            await relay.submit(signed_tx)
