from sniper.models.base import Base
from sniper.models.pool import (
    POOL_ANALYZING,
    POOL_BOUGHT,
    POOL_PENDING,
    POOL_RISKY,
    Pool,
    WhitelistEntry,
)
from sniper.models.trade import TRADE_EXECUTED, TRADE_FAILED, Trade

__all__ = [
    "Base",
    "Pool",
    "WhitelistEntry",
    "Trade",
    "POOL_ANALYZING",
    "POOL_PENDING",
    "POOL_RISKY",
    "POOL_BOUGHT",
    "TRADE_EXECUTED",
    "TRADE_FAILED",
]
