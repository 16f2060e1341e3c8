"""Solana trading wallet — keypair loading, balance checks, signing.

Private key is loaded ONCE at startup and never logged or exposed.
Only the public key is shown in logs and __repr__.
"""

from __future__ import annotations

import json

import base58
import httpx
from loguru import logger
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

LAMPORTS_PER_SOL = 1_000_000_000


def load_keypair(secret: str) -> Keypair:
    """Parse a base58 secret key or a JSON byte array (solana-keygen format)."""
    secret = secret.strip()
    if not secret:
        raise ValueError("Wallet private key is empty")
    try:
        if secret.startswith("["):
            key_bytes = bytes(json.loads(secret))
        else:
            key_bytes = base58.b58decode(secret)
        return Keypair.from_bytes(key_bytes)
    except (ValueError, TypeError) as e:
        # Don't chain: the original message may echo key material
        raise ValueError(f"Invalid wallet private key ({type(e).__name__})") from None


class SolanaWallet:
    """Manages the trading keypair and on-chain balance queries.

    Security: the keypair is only used through sign(); __repr__ and logs show
    only the public key.
    """

    def __init__(self, private_key: str, rpc_url: str) -> None:
        if not rpc_url:
            raise ValueError("RPC URL is empty")

        self._keypair = load_keypair(private_key)
        self._rpc_url = rpc_url
        self._http = httpx.AsyncClient(timeout=10.0)
        logger.info(f"[WALLET] Loaded wallet: {self.pubkey_str}")

    def __repr__(self) -> str:
        return f"SolanaWallet(pubkey={self.pubkey_str})"

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def pubkey_str(self) -> str:
        return str(self._keypair.pubkey())

    def sign(self, unsigned_tx: VersionedTransaction) -> VersionedTransaction:
        """Sign a fully-formed transaction (fee payer = this wallet)."""
        return VersionedTransaction(unsigned_tx.message, [self._keypair])

    async def get_balance_lamports(self) -> int | None:
        """Fetch the SOL balance in lamports. Returns None on error."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getBalance",
            "params": [self.pubkey_str, {"commitment": "confirmed"}],
        }
        try:
            resp = await self._http.post(self._rpc_url, json=payload)
            if resp.status_code != 200:
                logger.warning(f"[WALLET] getBalance HTTP {resp.status_code}")
                return None

            data = resp.json()
            if "error" in data:
                logger.warning(f"[WALLET] getBalance error: {data['error']}")
                return None

            return int(data["result"]["value"])

        except (httpx.TimeoutException, httpx.ConnectError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[WALLET] getBalance failed: {e}")
            return None

    async def get_balance(self) -> dict | None:
        """Balance in both units, as served to the dashboard."""
        lamports = await self.get_balance_lamports()
        if lamports is None:
            return None
        return {"sol": lamports / LAMPORTS_PER_SOL, "lamports": lamports}

    async def close(self) -> None:
        await self._http.aclose()
