"""Dashboard server — uvicorn sharing the pipeline's event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings
from sniper.pipeline import PoolPipeline


def build_dashboard_server(
    pipeline: PoolPipeline,
    *,
    wallet_pubkey: str = "",
    host: str | None = None,
    port: int | None = None,
) -> uvicorn.Server:
    """Wrap the dashboard app in a uvicorn server without starting it.

    The caller runs ``server.serve()`` as a task and sets ``should_exit``
    to shut it down together with the pipeline.
    """
    from sniper.api.app import create_app

    host = host or settings.dashboard_host
    port = port or settings.dashboard_port
    config = uvicorn.Config(
        app=create_app(pipeline, wallet_pubkey=wallet_pubkey),
        host=host,
        port=port,
        log_level="warning",
        loop="none",  # use the existing event loop
    )
    logger.info(f"[API] Dashboard on http://{host}:{port}")
    return uvicorn.Server(config)
