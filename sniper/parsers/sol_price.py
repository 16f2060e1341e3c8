"""SOL/USD price used to convert the USD buy size into lamports.

Starts from the configured static price. When a refresh interval is set, a
background loop pulls the price from Jupiter's price API and keeps the last
good value on failure.
"""

import asyncio

import httpx
from loguru import logger

PRICE_URL = "https://api.jup.ag/price/v2"
WSOL_MINT = "So11111111111111111111111111111111111111112"


class SolPriceCache:
    """Cached SOL/USD price with optional periodic refresh."""

    def __init__(
        self,
        static_price_usd: float,
        *,
        refresh_sec: int = 0,
        api_key: str = "",
    ) -> None:
        if static_price_usd <= 0:
            raise ValueError("SOL price must be positive")
        self._price = static_price_usd
        self._refresh_sec = refresh_sec
        headers = {"x-api-key": api_key} if api_key else {}
        self._http = httpx.AsyncClient(timeout=10.0, headers=headers)

    @property
    def price_usd(self) -> float:
        return self._price

    @property
    def refresh_enabled(self) -> bool:
        return self._refresh_sec > 0

    async def refresh(self) -> bool:
        """Fetch the latest price. Returns True when the cache was updated."""
        try:
            resp = await self._http.get(PRICE_URL, params={"ids": WSOL_MINT})
            if resp.status_code != 200:
                logger.debug(f"[SOL_PRICE] HTTP {resp.status_code}")
                return False
            entry = (resp.json().get("data") or {}).get(WSOL_MINT) or {}
            price = float(entry.get("price") or 0)
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.debug(f"[SOL_PRICE] Refresh failed: {e}")
            return False

        if price <= 0:
            return False
        self._price = price
        logger.debug(f"[SOL_PRICE] Updated via Jupiter: ${price:.2f}")
        return True

    async def run(self) -> None:
        """Background refresh loop. Returns immediately for a static price."""
        if not self.refresh_enabled:
            return
        while True:
            if not await self.refresh():
                logger.debug(f"[SOL_PRICE] No update, using cached: ${self._price:.2f}")
            await asyncio.sleep(self._refresh_sec)

    async def close(self) -> None:
        await self._http.aclose()
