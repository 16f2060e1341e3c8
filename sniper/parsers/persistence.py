"""Ledger persistence — pools, whitelist and trades over SQLAlchemy async.

Every method opens its own short session so concurrent pool tasks never
share one. Writes are idempotent by key: pools and whitelist upsert by pool
address, trades insert-only by signature.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sniper.models import (
    POOL_ANALYZING,
    POOL_BOUGHT,
    POOL_PENDING,
    POOL_RISKY,
    TRADE_EXECUTED,
    Pool,
    Trade,
    WhitelistEntry,
)
from sniper.parsers.meteora.models import PoolCreated


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _insert_for(session: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT (PostgreSQL or SQLite)."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


def pool_to_dict(pool: Pool) -> dict:
    return {
        "pool_address": pool.pool_address,
        "token_a": pool.token_a,
        "token_b": pool.token_b,
        "liquidity_usd": float(pool.liquidity_usd) if pool.liquidity_usd is not None else None,
        "slot": pool.slot,
        "signature": pool.signature,
        "status": pool.status,
        "risk_score": pool.risk_score,
        "risk_rationale": pool.risk_rationale,
        "detected_at": pool.detected_at.isoformat() if pool.detected_at else None,
    }


def trade_to_dict(trade: Trade) -> dict:
    return {
        "signature": trade.signature,
        "pool_address": trade.pool_address,
        "token_out": trade.token_out,
        "amount_in_sol": float(trade.amount_in_sol),
        "amount_out": str(trade.amount_out) if trade.amount_out is not None else None,
        "status": trade.status,
        "via": trade.via,
        "executed_at": trade.executed_at.isoformat() if trade.executed_at else None,
    }


class LedgerStore:
    """Append-mostly store read by the pipeline and the dashboard."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ─── Pools ───────────────────────────────────────────────────────

    async def insert_pool_if_absent(self, event: PoolCreated) -> bool:
        """Record a freshly detected pool in status=analyzing.

        Returns False when a row for the address already exists, which makes
        the address the dedup key across duplicate notifications and restarts.
        """
        async with self._session_factory() as session:
            insert = _insert_for(session)
            stmt = (
                insert(Pool)
                .values(
                    pool_address=event.pool_address,
                    token_a=event.token_a,
                    token_b=event.token_b,
                    liquidity_usd=event.liquidity_usd,
                    slot=event.slot,
                    signature=event.signature,
                    status=POOL_ANALYZING,
                    detected_at=event.detected_at,
                )
                .on_conflict_do_nothing(index_elements=["pool_address"])
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount == 1

    async def set_pool_verdict(
        self,
        pool_address: str,
        *,
        passed: bool,
        score: int | None,
        rationale: str,
    ) -> bool:
        """Move an analyzing pool to pending or risky. No-op for any other status."""
        status = POOL_PENDING if passed else POOL_RISKY
        async with self._session_factory() as session:
            result = await session.execute(
                update(Pool)
                .where(Pool.pool_address == pool_address, Pool.status == POOL_ANALYZING)
                .values(status=status, risk_score=score, risk_rationale=rationale)
            )
            await session.commit()
            moved = result.rowcount == 1
        if not moved:
            logger.warning(f"[LEDGER] {pool_address[:12]} not in analyzing, verdict ignored")
        return moved

    async def mark_pool_bought(self, pool_address: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(Pool)
                .where(Pool.pool_address == pool_address, Pool.status == POOL_PENDING)
                .values(status=POOL_BOUGHT)
            )
            await session.commit()
            return result.rowcount == 1

    async def get_pool(self, pool_address: str) -> Pool | None:
        async with self._session_factory() as session:
            return await session.get(Pool, pool_address)

    async def list_recent_pools(self, limit: int = 50) -> list[Pool]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Pool).order_by(Pool.detected_at.desc()).limit(limit)
            )
            return list(result.scalars().all())

    # ─── Whitelist ───────────────────────────────────────────────────

    async def approve_pool(self, pool_address: str) -> None:
        """Upsert a whitelist entry. Called by the operator, never by the pipeline."""
        async with self._session_factory() as session:
            insert = _insert_for(session)
            stmt = (
                insert(WhitelistEntry)
                .values(pool_address=pool_address, approved=True, approved_at=_utcnow())
                .on_conflict_do_update(
                    index_elements=["pool_address"],
                    set_={"approved": True},
                )
            )
            await session.execute(stmt)
            await session.commit()
        logger.info(f"[LEDGER] Whitelisted {pool_address}")

    async def is_whitelisted(self, pool_address: str) -> bool:
        async with self._session_factory() as session:
            entry = await session.get(WhitelistEntry, pool_address)
            return entry is not None and entry.approved

    # ─── Trades ──────────────────────────────────────────────────────

    async def record_trade(
        self,
        *,
        signature: str,
        pool_address: str,
        token_out: str,
        amount_in_sol: Decimal,
        amount_out: Decimal | None,
        via: str | None,
        status: str = TRADE_EXECUTED,
    ) -> bool:
        """Insert a trade keyed by signature. Returns False on a duplicate signature."""
        async with self._session_factory() as session:
            insert = _insert_for(session)
            stmt = (
                insert(Trade)
                .values(
                    signature=signature,
                    pool_address=pool_address,
                    token_out=token_out,
                    amount_in_sol=amount_in_sol,
                    amount_out=amount_out,
                    status=status,
                    via=via,
                    executed_at=_utcnow(),
                )
                .on_conflict_do_nothing(index_elements=["signature"])
            )
            result = await session.execute(stmt)
            await session.commit()
            inserted = result.rowcount == 1
        if not inserted:
            logger.warning(f"[LEDGER] Duplicate trade signature {signature[:16]}, ignored")
        return inserted

    async def list_recent_trades(self, limit: int = 50) -> list[Trade]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Trade).order_by(Trade.executed_at.desc()).limit(limit)
            )
            return list(result.scalars().all())

    async def list_trades_for_pool(self, pool_address: str) -> list[Trade]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Trade).where(Trade.pool_address == pool_address)
            )
            return list(result.scalars().all())
