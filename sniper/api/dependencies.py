"""FastAPI dependency injection — pipeline handle and rate limiter."""

from __future__ import annotations

from fastapi import HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from sniper.pipeline import PoolPipeline

# Shared rate limiter for the mutating control routes
limiter = Limiter(key_func=get_remote_address)


def get_pipeline(request: Request) -> PoolPipeline:
    """Return the pipeline the app was built around."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pipeline not initialised",
        )
    return pipeline
