"""Tests for SolanaWallet — keypair loading, balance queries, signing.

All HTTP calls are mocked via httpx.AsyncClient patching.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.signature import Signature  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]

from sniper.trading.wallet import LAMPORTS_PER_SOL, SolanaWallet, load_keypair

RPC_URL = "https://api.mainnet-beta.solana.com"


def _rpc_response(payload: dict, status: int = 200) -> MagicMock:
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status
    resp.json.return_value = payload
    return resp


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def wallet(keypair: Keypair) -> SolanaWallet:
    w = SolanaWallet(str(keypair), RPC_URL)
    w._http = AsyncMock(spec=httpx.AsyncClient)
    return w


# ── Key loading ────────────────────────────────────────────────────────


class TestLoadKeypair:
    def test_base58(self, keypair: Keypair):
        assert load_keypair(str(keypair)).pubkey() == keypair.pubkey()

    def test_json_byte_array(self, keypair: Keypair):
        secret = json.dumps(list(bytes(keypair)))
        assert load_keypair(secret).pubkey() == keypair.pubkey()

    def test_empty_key_raises(self):
        with pytest.raises(ValueError, match="private key is empty"):
            load_keypair("   ")

    def test_garbage_key_raises_without_echoing(self):
        with pytest.raises(ValueError, match="Invalid wallet private key") as exc_info:
            load_keypair("not-a-key-0OIl")
        assert "not-a-key" not in str(exc_info.value)
        assert exc_info.value.__cause__ is None


# ── Initialization ─────────────────────────────────────────────────────


class TestWalletInit:
    def test_init_empty_rpc_url_raises(self, keypair: Keypair):
        with pytest.raises(ValueError, match="RPC URL is empty"):
            SolanaWallet(str(keypair), "")

    def test_pubkey(self, wallet: SolanaWallet, keypair: Keypair):
        assert isinstance(wallet.pubkey, Pubkey)
        assert wallet.pubkey_str == str(keypair.pubkey())

    def test_repr_shows_pubkey_only(self, wallet: SolanaWallet, keypair: Keypair):
        r = repr(wallet)
        assert r == f"SolanaWallet(pubkey={wallet.pubkey_str})"
        assert str(keypair) not in r


# ── Signing ────────────────────────────────────────────────────────────


class TestSign:
    def test_sign_fills_fee_payer_signature(self, wallet: SolanaWallet, unsigned_tx: VersionedTransaction):
        assert unsigned_tx.signatures[0] == Signature.default()

        signed = wallet.sign(unsigned_tx)

        assert signed.signatures[0] != Signature.default()
        assert signed.message == unsigned_tx.message
        assert signed.verify_with_results() == [True]


# ── Balance ────────────────────────────────────────────────────────────


class TestBalance:
    async def test_balance_success(self, wallet: SolanaWallet):
        wallet._http.post = AsyncMock(
            return_value=_rpc_response({"jsonrpc": "2.0", "id": 1, "result": {"value": 5 * LAMPORTS_PER_SOL}})
        )

        assert await wallet.get_balance_lamports() == 5 * LAMPORTS_PER_SOL
        assert await wallet.get_balance() == {"sol": 5.0, "lamports": 5 * LAMPORTS_PER_SOL}

        method = wallet._http.post.call_args.kwargs["json"]["method"]
        assert method == "getBalance"

    async def test_balance_http_error(self, wallet: SolanaWallet):
        wallet._http.post = AsyncMock(return_value=_rpc_response({}, status=500))
        assert await wallet.get_balance_lamports() is None
        assert await wallet.get_balance() is None

    async def test_balance_rpc_error(self, wallet: SolanaWallet):
        wallet._http.post = AsyncMock(
            return_value=_rpc_response({"error": {"code": -32600, "message": "Invalid request"}})
        )
        assert await wallet.get_balance_lamports() is None

    async def test_balance_timeout(self, wallet: SolanaWallet):
        wallet._http.post = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
        assert await wallet.get_balance_lamports() is None
