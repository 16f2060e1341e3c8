"""Tests for JupiterSwapClient — quote and swap-transaction requests.

All HTTP calls are mocked. No real Jupiter API requests are made.
"""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from sniper.trading.jupiter_swap import WSOL_MINT, JupiterSwapClient, SwapError

TOKEN = "TokenMint111111111111111111111111111111111"
USER = "UserPubkey11111111111111111111111111111111"


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def client() -> JupiterSwapClient:
    c = JupiterSwapClient(base_url="https://quote-api.jup.ag/v6/", api_key="test-key")
    c._http = AsyncMock(spec=httpx.AsyncClient)
    return c


def _make_quote_response(*, out_amount: int = 10_000_000) -> dict:
    return {
        "inputMint": WSOL_MINT,
        "outputMint": TOKEN,
        "inAmount": "11764705",
        "outAmount": str(out_amount),
        "priceImpactPct": "0.5",
        "routePlan": [{"swapInfo": {"label": "Meteora"}}],
    }


def _response(status: int = 200, payload=None, text: str = "") -> MagicMock:
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    resp.text = text
    return resp


# ── URLs ───────────────────────────────────────────────────────────────


def test_urls_strip_trailing_slash(client: JupiterSwapClient):
    assert client.quote_url == "https://quote-api.jup.ag/v6/quote"
    assert client.swap_url == "https://quote-api.jup.ag/v6/swap"


# ── get_quote ──────────────────────────────────────────────────────────


class TestGetQuote:
    async def test_quote_success(self, client: JupiterSwapClient):
        client._http.get = AsyncMock(return_value=_response(payload=_make_quote_response()))

        quote = await client.get_quote(
            input_mint=WSOL_MINT, output_mint=TOKEN, amount=11_764_705, slippage_bps=100
        )

        assert quote["outAmount"] == "10000000"
        params = client._http.get.call_args.kwargs["params"]
        assert params == {
            "inputMint": WSOL_MINT,
            "outputMint": TOKEN,
            "amount": "11764705",
            "slippageBps": "100",
        }

    async def test_quote_non_200_raises(self, client: JupiterSwapClient):
        client._http.get = AsyncMock(
            return_value=_response(400, payload={"error": "Could not find any route"})
        )
        with pytest.raises(SwapError, match="Could not find any route"):
            await client.get_quote(input_mint=WSOL_MINT, output_mint=TOKEN, amount=1, slippage_bps=100)

    async def test_quote_network_error_raises(self, client: JupiterSwapClient):
        client._http.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(SwapError, match="Quote request failed"):
            await client.get_quote(input_mint=WSOL_MINT, output_mint=TOKEN, amount=1, slippage_bps=100)

    async def test_quote_without_out_amount_raises(self, client: JupiterSwapClient):
        client._http.get = AsyncMock(return_value=_response(payload={"routePlan": []}))
        with pytest.raises(SwapError, match="no outAmount"):
            await client.get_quote(input_mint=WSOL_MINT, output_mint=TOKEN, amount=1, slippage_bps=100)

    @pytest.mark.parametrize("out_amount", [None, "", "abc", "1.5", "0", "-5"])
    async def test_quote_with_unusable_out_amount_raises(self, client: JupiterSwapClient, out_amount):
        quote = _make_quote_response()
        quote["outAmount"] = out_amount
        client._http.get = AsyncMock(return_value=_response(payload=quote))

        with pytest.raises(SwapError, match="outAmount"):
            await client.get_quote(input_mint=WSOL_MINT, output_mint=TOKEN, amount=1, slippage_bps=100)

    async def test_quote_is_not_retried(self, client: JupiterSwapClient):
        client._http.get = AsyncMock(return_value=_response(500, payload=ValueError("bad"), text="oops"))
        with pytest.raises(SwapError):
            await client.get_quote(input_mint=WSOL_MINT, output_mint=TOKEN, amount=1, slippage_bps=100)
        assert client._http.get.await_count == 1


# ── get_swap_transaction ───────────────────────────────────────────────


class TestGetSwapTransaction:
    async def test_swap_success(self, client: JupiterSwapClient, unsigned_tx: VersionedTransaction):
        tx_b64 = base64.b64encode(bytes(unsigned_tx)).decode()
        client._http.post = AsyncMock(
            return_value=_response(payload={"swapTransaction": tx_b64, "lastValidBlockHeight": 1})
        )

        tx = await client.get_swap_transaction(_make_quote_response(), USER)

        assert isinstance(tx, VersionedTransaction)
        assert tx.message == unsigned_tx.message
        body = client._http.post.call_args.kwargs["json"]
        assert body["userPublicKey"] == USER
        assert body["wrapAndUnwrapSol"] is True
        assert body["prioritizationFeeLamports"] == "auto"
        assert body["quoteResponse"]["outAmount"] == "10000000"

    async def test_swap_missing_transaction_raises(self, client: JupiterSwapClient):
        client._http.post = AsyncMock(return_value=_response(payload={"error": "nope"}))
        with pytest.raises(SwapError, match="no swapTransaction"):
            await client.get_swap_transaction(_make_quote_response(), USER)

    async def test_swap_garbage_bytes_raises(self, client: JupiterSwapClient):
        garbage = base64.b64encode(b"\x01\x02\x03").decode()
        client._http.post = AsyncMock(return_value=_response(payload={"swapTransaction": garbage}))
        with pytest.raises(SwapError, match="undecodable"):
            await client.get_swap_transaction(_make_quote_response(), USER)

    async def test_swap_non_200_raises(self, client: JupiterSwapClient):
        client._http.post = AsyncMock(return_value=_response(500, payload={"message": "internal"}))
        with pytest.raises(SwapError, match="Swap HTTP 500"):
            await client.get_swap_transaction(_make_quote_response(), USER)
