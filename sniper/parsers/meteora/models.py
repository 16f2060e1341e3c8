"""Pydantic v2 models for Meteora pool events."""

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from sniper.parsers.meteora.constants import WSOL_MINT


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def pick_target_mint(token_a: str | None, token_b: str | None) -> str | None:
    """The freshly launched side of a pair (the one that isn't SOL)."""
    if token_a is None or token_b is None:
        return None
    if token_b == WSOL_MINT:
        return token_a
    return token_b


class PoolCreated(BaseModel):
    """Event: new pool account observed via programSubscribe.

    token_a/token_b are None when the account data could not be decoded;
    downstream treats such pools as unverified.
    """

    pool_address: str
    slot: int | None = None
    signature: str | None = None
    token_a: str | None = None
    token_b: str | None = None
    liquidity_usd: Decimal | None = None
    detected_at: datetime = Field(default_factory=_utcnow)

    model_config = {"extra": "ignore"}

    @property
    def token_verified(self) -> bool:
        return self.token_a is not None and self.token_b is not None

    @property
    def target_mint(self) -> str | None:
        return pick_target_mint(self.token_a, self.token_b)
