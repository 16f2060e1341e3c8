"""Entry point for the Meteora sniper: pool pipeline + dashboard API."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from sniper.api.server import build_dashboard_server
from sniper.db.database import async_session_factory, close_db, init_db
from sniper.parsers.llm_analyzer.client import RiskAnalyzerClient
from sniper.parsers.meteora.ws_client import MeteoraPoolSource
from sniper.parsers.persistence import LedgerStore
from sniper.parsers.sol_price import SolPriceCache
from sniper.pipeline import PoolPipeline
from sniper.trading.broadcast import BroadcastRelay
from sniper.trading.executor import TradeExecutor
from sniper.trading.jupiter_swap import JupiterSwapClient
from sniper.trading.risk_manager import RiskManager
from sniper.trading.wallet import SolanaWallet
from sniper.utils.logger import setup_logger


async def main() -> None:
    setup_logger(level=settings.log_level)
    logger.info("Starting Meteora sniper...")

    wallet = SolanaWallet(settings.wallet_private_key, settings.rpc_url)
    logger.info(f"Wallet loaded: {wallet.pubkey_str}")

    await init_db()

    ledger = LedgerStore(async_session_factory)
    sol_price = SolPriceCache(
        settings.sol_price_usd,
        refresh_sec=settings.sol_price_refresh_sec,
        api_key=settings.jupiter_api_key,
    )
    risk_client = RiskAnalyzerClient(
        settings.groq_api_key,
        base_url=settings.risk_base_url,
        model=settings.risk_model,
        threshold=settings.risk_pass_threshold,
    )
    swap_client = JupiterSwapClient(
        base_url=settings.jupiter_base_url,
        api_key=settings.jupiter_api_key,
    )
    relay = BroadcastRelay(
        relay_endpoints=settings.jito_endpoints,
        rpc_url=settings.rpc_url,
        relay_timeout=settings.jito_timeout_sec,
        max_retries=settings.rpc_send_max_retries,
        auth_key=settings.jito_auth_key,
    )
    executor = TradeExecutor(
        wallet=wallet,
        swap_client=swap_client,
        relay=relay,
        ledger=ledger,
        risk_manager=RiskManager(
            min_buy_usd=settings.min_buy_usd,
            max_buy_sol=settings.max_buy_sol,
            fee_reserve_sol=settings.fee_reserve_sol,
        ),
        sol_price=sol_price,
        slippage_bps=settings.slippage_bps,
    )
    source = MeteoraPoolSource(
        settings.ws_url,
        program_id=settings.meteora_program_id,
        account_size=settings.pool_account_size,
    )
    pipeline = PoolPipeline(
        source=source,
        risk_gate=risk_client,
        ledger=ledger,
        executor=executor,
        max_workers=settings.pipeline_max_workers,
        risk_timeout=settings.risk_timeout_sec,
    )

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    if settings.autostart:
        await pipeline.start()
    else:
        logger.info("Pipeline idle, POST /start on the dashboard to begin sniping")

    server = build_dashboard_server(pipeline, wallet_pubkey=wallet.pubkey_str)
    server_task = asyncio.create_task(server.serve())
    price_task = asyncio.create_task(sol_price.run())
    shutdown_task = asyncio.create_task(shutdown_event.wait())

    # Wait for the dashboard to exit or a shutdown signal
    await asyncio.wait(
        [server_task, shutdown_task],
        return_when=asyncio.FIRST_COMPLETED,
    )

    await pipeline.stop()
    await pipeline.drain()
    server.should_exit = True
    await asyncio.wait([server_task], timeout=5)

    for task in (server_task, price_task, shutdown_task):
        if task.done():
            continue
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    await risk_client.close()
    await swap_client.close()
    await relay.close()
    await sol_price.close()
    await wallet.close()
    await close_db()
    logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
