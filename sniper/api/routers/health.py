"""Health and wallet balance."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from sniper.api.dependencies import get_pipeline
from sniper.pipeline import PoolPipeline

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    balance: str | None
    wallet: str
    active: bool
    stats: dict[str, int]


class BalanceResponse(BaseModel):
    sol: float
    lamports: int


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    pipeline: PoolPipeline = Depends(get_pipeline),
) -> HealthResponse:
    """Liveness plus wallet balance; degraded when the RPC can't be reached."""
    balance = await pipeline.get_balance()
    return HealthResponse(
        status="active" if balance is not None else "degraded",
        balance=f"{balance['sol']:.4f}" if balance is not None else None,
        wallet=request.app.state.wallet_pubkey,
        active=pipeline.active,
        stats=pipeline.stats,
    )


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(pipeline: PoolPipeline = Depends(get_pipeline)) -> BalanceResponse:
    balance = await pipeline.get_balance()
    if balance is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Balance unavailable",
        )
    return BalanceResponse(**balance)
