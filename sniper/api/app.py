"""FastAPI application factory for the dashboard API."""

from __future__ import annotations

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware

from sniper.api.dependencies import limiter
from sniper.pipeline import PoolPipeline


def create_app(pipeline: PoolPipeline, *, wallet_pubkey: str = "") -> FastAPI:
    """Build the dashboard app around a running (or stopped) pipeline."""
    app = FastAPI(
        title="Meteora Sniper API",
        version="0.1.0",
        redoc_url=None,
    )
    app.state.pipeline = pipeline
    app.state.wallet_pubkey = wallet_pubkey

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # The dashboard frontend is served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    from sniper.api.routers.control import router as control_router
    from sniper.api.routers.health import router as health_router
    from sniper.api.routers.pools import router as pools_router
    from sniper.api.routers.trades import router as trades_router

    app.include_router(health_router)
    app.include_router(pools_router)
    app.include_router(trades_router)
    app.include_router(control_router)

    return app
