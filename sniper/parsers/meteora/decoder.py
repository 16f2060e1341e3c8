"""Decode token mints from Meteora Dynamic AMM pool account data.

Layout from https://github.com/MeteoraAg/dynamic-amm-sdk (Pool account):
  0:8     Anchor discriminator
  8:40    lp_mint (Pubkey 32b)
  40:72   token_a_mint (Pubkey 32b)
  72:104  token_b_mint (Pubkey 32b)
"""

import base64
import binascii

from loguru import logger
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from sniper.parsers.meteora.constants import (
    POOL_MINTS_END,
    TOKEN_A_MINT_OFFSET,
    TOKEN_B_MINT_OFFSET,
)

_SYSTEM_PROGRAM = str(Pubkey.default())


def decode_pool_mints(pool_address: str, data_b64: str) -> tuple[str, str] | None:
    """Return (token_a_mint, token_b_mint) or None on invalid data."""
    try:
        data = base64.b64decode(data_b64, validate=True)
    except (binascii.Error, ValueError):
        logger.debug(f"[POOLS] Failed to base64-decode account data for {pool_address[:12]}")
        return None

    if len(data) < POOL_MINTS_END:
        logger.debug(
            f"[POOLS] Account data too short: {len(data)} < {POOL_MINTS_END} "
            f"for {pool_address[:12]}"
        )
        return None

    token_a = str(Pubkey.from_bytes(data[TOKEN_A_MINT_OFFSET:TOKEN_A_MINT_OFFSET + 32]))
    token_b = str(Pubkey.from_bytes(data[TOKEN_B_MINT_OFFSET:TOKEN_B_MINT_OFFSET + 32]))

    # Zeroed mint slots mean the account isn't an initialized pool
    if token_a == _SYSTEM_PROGRAM or token_b == _SYSTEM_PROGRAM:
        logger.debug(f"[POOLS] Uninitialized mints in {pool_address[:12]}")
        return None

    return token_a, token_b
