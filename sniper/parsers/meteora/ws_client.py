"""WebSocket source of new Meteora pools via Solana programSubscribe.

ConnectionState enum, exponential backoff, resubscribe on every
reconnect. Each program notification becomes a PoolCreated event pushed
onto the pipeline queue. The source never deduplicates; the pipeline owns that.
"""

import asyncio
import json
from enum import Enum

import websockets
from loguru import logger
from pydantic import ValidationError
from websockets.asyncio.client import ClientConnection

from sniper.parsers.meteora.constants import PROGRAM_NOTIFICATION
from sniper.parsers.meteora.decoder import decode_pool_mints
from sniper.parsers.meteora.models import PoolCreated


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ACTIVE = "active"


class MeteoraPoolSource:
    """Persistent programSubscribe listener for a pool program.

    The dataSize filter is a coarse heuristic for the pool account layout;
    anything that slips through and fails decoding is still emitted with
    unknown token identities.
    """

    def __init__(
        self,
        ws_url: str,
        *,
        program_id: str,
        account_size: int,
        reconnect_delay: float = 5.0,
        max_reconnect_delay: float = 60.0,
    ) -> None:
        self._ws_url = ws_url
        self._program_id = program_id
        self._account_size = account_size
        self._ws: ClientConnection | None = None
        self._state = ConnectionState.DISCONNECTED
        self._running = False
        self._base_reconnect_delay = reconnect_delay
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._message_count = 0
        self._event_count = 0
        self._subscription_id: int | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def message_count(self) -> int:
        return self._message_count

    @property
    def event_count(self) -> int:
        return self._event_count

    @property
    def running(self) -> bool:
        return self._running

    def subscribe_request(self) -> dict:
        return {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "programSubscribe",
            "params": [
                self._program_id,
                {
                    "commitment": "confirmed",
                    "encoding": "base64",
                    "filters": [{"dataSize": self._account_size}],
                },
            ],
        }

    async def run(self, queue: asyncio.Queue[PoolCreated]) -> None:
        """Connect and listen until stop(). Auto-reconnects on disconnect."""
        self._running = True
        while self._running:
            try:
                self._state = ConnectionState.CONNECTING
                async with websockets.connect(
                    self._ws_url,
                    ping_interval=30,
                    ping_timeout=10,
                    close_timeout=5,
                ) as ws:
                    self._ws = ws
                    self._state = ConnectionState.CONNECTED
                    self._reconnect_delay = self._base_reconnect_delay
                    await self._subscribe()
                    self._state = ConnectionState.ACTIVE
                    logger.info(f"[POOLS] WS connected, programSubscribe {self._program_id[:8]} active")
                    await self._listen(queue)
            except (
                websockets.WebSocketException,
                ConnectionError,
                OSError,
                TimeoutError,
            ) as e:
                logger.warning(f"[POOLS] WS disconnected: {e}")
            except Exception:
                logger.exception("[POOLS] Unexpected error in WS loop")
            finally:
                self._state = ConnectionState.DISCONNECTED
                self._ws = None
                self._subscription_id = None

            if self._running:
                logger.info(f"[POOLS] Reconnecting in {self._reconnect_delay:.0f}s...")
                await asyncio.sleep(self._reconnect_delay)
                self._reconnect_delay = min(
                    self._reconnect_delay * 2, self._max_reconnect_delay
                )

    async def _subscribe(self) -> None:
        if not self._ws:
            return
        await self._ws.send(json.dumps(self.subscribe_request()))
        try:
            response = await asyncio.wait_for(self._ws.recv(), timeout=10.0)
            data = json.loads(response)
            if "result" in data:
                self._subscription_id = data["result"]
                logger.debug(f"[POOLS] programSubscribe id={self._subscription_id}")
            elif "error" in data:
                logger.warning(f"[POOLS] programSubscribe rejected: {data['error']}")
        except (asyncio.TimeoutError, json.JSONDecodeError) as e:
            logger.warning(f"[POOLS] Subscribe confirmation failed: {e}")

    async def _listen(self, queue: asyncio.Queue[PoolCreated]) -> None:
        if not self._ws:
            return

        async for message in self._ws:
            self._message_count += 1
            event = self.parse_notification(message)
            if event is None:
                continue
            self._event_count += 1
            logger.info(f"[POOLS] New pool {event.pool_address} slot={event.slot}")
            await queue.put(event)

    def parse_notification(self, message: str | bytes) -> PoolCreated | None:
        """Turn a raw programNotification into a PoolCreated, or None to skip.

        Never raises: a malformed payload is logged and dropped.
        """
        try:
            data = json.loads(message)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("[POOLS] Skipping non-JSON message")
            return None

        if not isinstance(data, dict) or data.get("method") != PROGRAM_NOTIFICATION:
            return None

        try:
            result = data["params"]["result"]
            value = result["value"]
            pool_address = value["pubkey"]
            slot = result.get("context", {}).get("slot")
        except (KeyError, TypeError) as e:
            logger.warning(f"[POOLS] Malformed notification, missing {e}")
            return None

        token_a = token_b = None
        account_data = (value.get("account") or {}).get("data")
        if isinstance(account_data, list) and account_data:
            mints = decode_pool_mints(pool_address, account_data[0])
            if mints:
                token_a, token_b = mints

        try:
            return PoolCreated(
                pool_address=pool_address,
                slot=slot,
                signature=value.get("signature") or None,
                token_a=token_a,
                token_b=token_b,
            )
        except ValidationError as e:
            logger.warning(f"[POOLS] Invalid notification for {str(pool_address)[:12]}: {e}")
            return None

    async def stop(self) -> None:
        self._running = False
        if self._ws:
            await self._ws.close()
            self._ws = None
        self._state = ConnectionState.DISCONNECTED
