"""Pool acquisition pipeline — pool source → risk gate → whitelist → buy.

The pool source pushes PoolCreated events onto a queue; a single consumer
dispatches each event to its own task, at most `max_workers` at a time.
Per pool the stages are strictly sequential:

    unseen → analyzing → pending | risky
    pending → bought   (whitelisted, buy succeeded)
    pending → pending  (not whitelisted yet, or buy failed)

The pool address is the dedup key: a duplicate event never reaches the risk
gate or the executor. A whitelist approval that lands after the pool went
pending triggers the buy through approve().
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from sniper.models import POOL_PENDING, Pool, Trade
from sniper.parsers.llm_analyzer.client import RiskVerdict
from sniper.parsers.meteora.models import PoolCreated, pick_target_mint
from sniper.parsers.persistence import LedgerStore
from sniper.trading.executor import BuyResult


class PoolSource(Protocol):
    async def run(self, queue: asyncio.Queue[PoolCreated]) -> None: ...

    async def stop(self) -> None: ...


class RiskGate(Protocol):
    async def analyze(self, token_id: str, *, timeout: float = ...) -> RiskVerdict: ...


class Executor(Protocol):
    async def buy(self, pool_address: str, token_mint: str) -> BuyResult: ...

    async def get_balance(self) -> dict | None: ...


class PipelineState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class PoolStage(Enum):
    """Where a single event's processing ended."""

    DUPLICATE = "duplicate"
    RISKY = "risky"
    SKIPPED = "skipped"  # pending, not whitelisted
    BUY_IN_PROGRESS = "buy_in_progress"
    BUY_FAILED = "buy_failed"
    BOUGHT = "bought"


@dataclass
class PipelineStats:
    events_received: int = 0
    duplicates: int = 0
    pools_risky: int = 0
    pools_skipped: int = 0
    buys_executed: int = 0
    buys_failed: int = 0


class PoolPipeline:
    """Owns the lifecycle of the whole acquisition flow."""

    def __init__(
        self,
        *,
        source: PoolSource,
        risk_gate: RiskGate,
        ledger: LedgerStore,
        executor: Executor,
        max_workers: int = 8,
        risk_timeout: float = 15.0,
        queue_maxsize: int = 1000,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._source = source
        self._risk = risk_gate
        self._ledger = ledger
        self._executor = executor
        self._max_workers = max_workers
        self._risk_timeout = risk_timeout
        self._queue_maxsize = queue_maxsize

        self._state = PipelineState.STOPPED
        self._queue: asyncio.Queue[PoolCreated] | None = None
        self._workers: asyncio.Semaphore | None = None
        self._source_task: asyncio.Task | None = None
        self._consumer_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

        # Checked and updated without an await in between
        self._seen: set[str] = set()
        self._buying: set[str] = set()
        self._bought: set[str] = set()
        self._stats = PipelineStats()

    # ─── Lifecycle ───────────────────────────────────────────────────

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is PipelineState.RUNNING

    @property
    def stats(self) -> dict[str, int]:
        return asdict(self._stats)

    async def start(self) -> bool:
        """Begin consuming pool events. Returns False if already running."""
        if self._state is PipelineState.RUNNING:
            return False
        self._queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._workers = asyncio.Semaphore(self._max_workers)
        self._source_task = asyncio.create_task(self._run_source(self._queue))
        self._consumer_task = asyncio.create_task(self._consume(self._queue))
        self._state = PipelineState.RUNNING
        logger.info(f"[PIPELINE] Started ({self._max_workers} workers)")
        return True

    async def stop(self) -> bool:
        """Stop the subscription and the consumer. In-flight pool tasks keep running."""
        if self._state is PipelineState.STOPPED:
            return False
        self._state = PipelineState.STOPPED
        await self._source.stop()
        for task in (self._source_task, self._consumer_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._source_task = None
        self._consumer_task = None
        self._queue = None
        logger.info(f"[PIPELINE] Stopped ({len(self._tasks)} pool tasks still in flight)")
        return True

    async def drain(self) -> None:
        """Wait for queued events and every in-flight pool task to finish."""
        if self._queue is not None:
            await self._queue.join()
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run_source(self, queue: asyncio.Queue[PoolCreated]) -> None:
        try:
            await self._source.run(queue)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[PIPELINE] Pool source crashed")

    async def _consume(self, queue: asyncio.Queue[PoolCreated]) -> None:
        assert self._workers is not None
        workers = self._workers
        while True:
            event = await queue.get()
            self._stats.events_received += 1
            await workers.acquire()
            self._spawn(self._process(event, workers, queue))

    async def _process(
        self,
        event: PoolCreated,
        workers: asyncio.Semaphore,
        queue: asyncio.Queue[PoolCreated],
    ) -> None:
        try:
            await self.handle_event(event)
        except Exception:
            logger.exception(f"[PIPELINE] Failed processing pool {event.pool_address}")
        finally:
            workers.release()
            queue.task_done()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ─── Per-pool flow ───────────────────────────────────────────────

    async def handle_event(self, event: PoolCreated) -> PoolStage:
        """Run one pool through analyzing → pending|risky → (buy)."""
        address = event.pool_address
        if address in self._seen:
            self._stats.duplicates += 1
            logger.debug(f"[PIPELINE] Duplicate event for {address[:12]}")
            return PoolStage.DUPLICATE
        self._seen.add(address)

        try:
            inserted = await self._ledger.insert_pool_if_absent(event)
        except Exception:
            self._seen.discard(address)
            raise
        if not inserted:
            self._stats.duplicates += 1
            logger.debug(f"[PIPELINE] {address[:12]} already in ledger")
            return PoolStage.DUPLICATE

        token = event.target_mint
        if token is None:
            await self._ledger.set_pool_verdict(
                address,
                passed=False,
                score=None,
                rationale="Token identity unverified: pool account not decoded",
            )
            self._stats.pools_risky += 1
            logger.warning(f"[PIPELINE] {address[:12]} unverified token, marked risky")
            return PoolStage.RISKY

        logger.info(f"[PIPELINE] Analyzing pool {address[:12]} token={token[:12]}")
        verdict = await self._risk.analyze(token, timeout=self._risk_timeout)
        moved = await self._ledger.set_pool_verdict(
            address,
            passed=verdict.passed,
            score=verdict.score,
            rationale=verdict.rationale,
        )
        if not moved:
            return PoolStage.DUPLICATE
        if not verdict.passed:
            self._stats.pools_risky += 1
            logger.info(f"[PIPELINE] {address[:12]} risky (score={verdict.score})")
            return PoolStage.RISKY

        logger.info(f"[PIPELINE] {address[:12]} passed risk (score={verdict.score})")
        if not await self._ledger.is_whitelisted(address):
            self._stats.pools_skipped += 1
            logger.info(f"[PIPELINE] {address[:12]} pending, awaiting whitelist approval")
            return PoolStage.SKIPPED

        return await self._try_buy(address, token)

    async def _try_buy(self, address: str, token: str) -> PoolStage:
        if address in self._buying or address in self._bought:
            logger.info(f"[PIPELINE] Buy for {address[:12]} already attempted, skipping")
            return PoolStage.BUY_IN_PROGRESS
        self._buying.add(address)
        try:
            result = await self._executor.buy(address, token)
        finally:
            self._buying.discard(address)

        if not result.success:
            self._stats.buys_failed += 1
            logger.warning(
                f"[PIPELINE] Buy for {address[:12]} ended {result.outcome.value}: {result.error}"
            )
            return PoolStage.BUY_FAILED

        self._bought.add(address)
        self._stats.buys_executed += 1
        if not result.recorded:
            # Broadcast went out but no trade row: leave the pool pending
            logger.error(f"[PIPELINE] {address[:12]} bought but trade not recorded, status left pending")
            return PoolStage.BOUGHT
        await self._ledger.mark_pool_bought(address)
        return PoolStage.BOUGHT

    # ─── Dashboard surface ───────────────────────────────────────────

    async def approve(self, pool_address: str) -> bool:
        """Whitelist a pool. Returns True when a late buy was scheduled for it."""
        await self._ledger.approve_pool(pool_address)
        if not self.active:
            return False

        pool = await self._ledger.get_pool(pool_address)
        if pool is None or pool.status != POOL_PENDING:
            return False
        token = pick_target_mint(pool.token_a, pool.token_b)
        if token is None:
            return False

        logger.info(f"[PIPELINE] Late approval for pending pool {pool_address[:12]}, buying")
        self._spawn(self._late_buy(pool_address, token))
        return True

    async def _late_buy(self, address: str, token: str) -> None:
        try:
            await self._try_buy(address, token)
        except Exception:
            logger.exception(f"[PIPELINE] Late buy for {address} crashed")

    async def get_balance(self) -> dict | None:
        return await self._executor.get_balance()

    async def list_recent_pools(self, limit: int = 50) -> list[Pool]:
        return await self._ledger.list_recent_pools(limit)

    async def list_recent_trades(self, limit: int = 50) -> list[Trade]:
        return await self._ledger.list_recent_trades(limit)
