from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from sniper.models.base import Base

TRADE_EXECUTED = "executed"
TRADE_FAILED = "failed"


class Trade(Base):
    """Submitted buy. The broadcast signature is the idempotency key."""

    __tablename__ = "trades"

    signature: Mapped[str] = mapped_column(String(128), primary_key=True)
    pool_address: Mapped[str] = mapped_column(String(64))
    token_out: Mapped[str] = mapped_column(String(64))
    amount_in_sol: Mapped[Decimal] = mapped_column(Numeric)
    amount_out: Mapped[Decimal | None] = mapped_column(Numeric)  # quoted, not confirmed
    status: Mapped[str] = mapped_column(String(20), default=TRADE_EXECUTED)
    via: Mapped[str | None] = mapped_column(String(10))  # "jito" | "rpc"
    executed_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_trades_time", "executed_at"),
        Index("idx_trades_pool", "pool_address"),
    )
