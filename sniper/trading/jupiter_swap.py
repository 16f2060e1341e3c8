"""Jupiter v6 quote + swap-transaction client.

Pipeline pieces used by the executor:
  1. GET  /quote — best route for a fixed input amount
  2. POST /swap  — fully-formed unsigned VersionedTransaction (base64) with
                   SOL wrap/unwrap and an automatic priority fee

Each call is made exactly once; a failure raises SwapError and the caller
decides what to do. Signing and broadcasting live elsewhere.
"""

from __future__ import annotations

import base64
import binascii

import httpx
from loguru import logger
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

WSOL_MINT = "So11111111111111111111111111111111111111112"


class SwapError(Exception):
    """Quote or swap-transaction request failed."""


class JupiterSwapClient:
    """Thin async client over Jupiter's quote and swap endpoints."""

    def __init__(
        self,
        *,
        base_url: str = "https://quote-api.jup.ag/v6",
        api_key: str = "",
        timeout: float = 10.0,
        priority_fee_lamports: int | str = "auto",
    ) -> None:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            headers["x-api-key"] = api_key
        self._base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(timeout=timeout, headers=headers)
        self._priority_fee = priority_fee_lamports

    @property
    def quote_url(self) -> str:
        return f"{self._base_url}/quote"

    @property
    def swap_url(self) -> str:
        return f"{self._base_url}/swap"

    async def get_quote(
        self,
        *,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
    ) -> dict:
        """Quote `amount` smallest units of input_mint → output_mint."""
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
        }
        try:
            resp = await self._http.get(self.quote_url, params=params)
        except httpx.HTTPError as e:
            raise SwapError(f"Quote request failed: {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise SwapError(f"Quote HTTP {resp.status_code}: {_error_message(resp)}")

        try:
            quote = resp.json()
        except ValueError as e:
            raise SwapError("Quote response is not JSON") from e
        if not isinstance(quote, dict) or "outAmount" not in quote:
            raise SwapError("Quote response has no outAmount")
        try:
            out_amount = int(quote["outAmount"])
        except (TypeError, ValueError) as e:
            raise SwapError(f"Quote outAmount is not an integer: {quote['outAmount']!r}") from e
        if out_amount <= 0:
            raise SwapError(f"Quote outAmount is not positive: {out_amount}")

        logger.debug(
            f"[SWAP] Quote {amount} {input_mint[:6]} → {out_amount} {output_mint[:6]} "
            f"impact={quote.get('priceImpactPct', '?')}"
        )
        return quote

    async def get_swap_transaction(self, quote: dict, user_pubkey: str) -> VersionedTransaction:
        """Request the unsigned swap transaction matching `quote`."""
        payload = {
            "quoteResponse": quote,
            "userPublicKey": user_pubkey,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
            "prioritizationFeeLamports": self._priority_fee,
        }
        try:
            resp = await self._http.post(self.swap_url, json=payload)
        except httpx.HTTPError as e:
            raise SwapError(f"Swap request failed: {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise SwapError(f"Swap HTTP {resp.status_code}: {_error_message(resp)}")

        try:
            raw = base64.b64decode(resp.json()["swapTransaction"])
        except (KeyError, TypeError) as e:
            raise SwapError("Swap response has no swapTransaction") from e
        except (ValueError, binascii.Error) as e:
            raise SwapError(f"Swap transaction undecodable: {e}") from e

        try:
            return VersionedTransaction.from_bytes(raw)
        except Exception as e:  # solders raises its own bincode error types
            raise SwapError(f"Swap transaction undecodable: {e}") from e

    async def close(self) -> None:
        await self._http.aclose()


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(data, dict):
        return str(data.get("error", data.get("message", data)))[:200]
    return str(data)[:200]
