"""Observed pools and whitelist approval."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from sniper.api.dependencies import get_pipeline, limiter
from sniper.parsers.persistence import pool_to_dict
from sniper.pipeline import PoolPipeline

router = APIRouter(prefix="/pools", tags=["pools"])


class ApproveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pool_address: str = Field(alias="poolAddress", min_length=32, max_length=44)


class ApproveResponse(BaseModel):
    status: str
    poolAddress: str
    buy_scheduled: bool


@router.get("")
async def list_pools(
    pipeline: PoolPipeline = Depends(get_pipeline),
    limit: int = Query(50, ge=1, le=500),
) -> list[dict[str, Any]]:
    """Most recently detected pools first."""
    return [pool_to_dict(p) for p in await pipeline.list_recent_pools(limit)]


@router.post("/approve", response_model=ApproveResponse)
@limiter.limit("30/minute")
async def approve_pool(
    request: Request,
    body: ApproveRequest,
    pipeline: PoolPipeline = Depends(get_pipeline),
) -> ApproveResponse:
    """Whitelist a pool; a pending pool is bought right away if the pipeline runs."""
    scheduled = await pipeline.approve(body.pool_address)
    return ApproveResponse(
        status="approved",
        poolAddress=body.pool_address,
        buy_scheduled=scheduled,
    )
