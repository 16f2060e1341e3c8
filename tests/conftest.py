"""Shared test fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from sniper.models import Base
from sniper.parsers.persistence import LedgerStore


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite file per test with NullPool to avoid loop mismatch.

    The ledger opens one session per call, so the schema lives in a file
    rather than a per-connection in-memory database.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def ledger(session_factory: async_sessionmaker[AsyncSession]) -> LedgerStore:
    return LedgerStore(session_factory)
