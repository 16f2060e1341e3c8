from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, Numeric, String, Text, func, true
from sqlalchemy.orm import Mapped, mapped_column

from sniper.models.base import Base

# Pool lifecycle: analyzing → pending | risky, pending → bought
POOL_ANALYZING = "analyzing"
POOL_PENDING = "pending"
POOL_RISKY = "risky"
POOL_BOUGHT = "bought"


class Pool(Base):
    """Newly detected Meteora pool and its risk verdict."""

    __tablename__ = "pools"

    pool_address: Mapped[str] = mapped_column(String(64), primary_key=True)
    token_a: Mapped[str | None] = mapped_column(String(64))
    token_b: Mapped[str | None] = mapped_column(String(64))
    liquidity_usd: Mapped[Decimal | None] = mapped_column(Numeric)
    slot: Mapped[int | None] = mapped_column(BigInteger)
    signature: Mapped[str | None] = mapped_column(String(128))
    status: Mapped[str] = mapped_column(String(20), default=POOL_ANALYZING)
    risk_score: Mapped[int | None] = mapped_column(Integer)
    risk_rationale: Mapped[str | None] = mapped_column(Text)
    detected_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_pools_detected", "detected_at"),
        Index("idx_pools_status", "status"),
    )


class WhitelistEntry(Base):
    """Operator approval for a pool. Presence with approved=True clears it for buying."""

    __tablename__ = "whitelist"

    pool_address: Mapped[str] = mapped_column(String(64), primary_key=True)
    approved: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true())
    approved_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
