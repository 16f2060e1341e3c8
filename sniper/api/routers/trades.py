"""Executed trades."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from sniper.api.dependencies import get_pipeline
from sniper.parsers.persistence import trade_to_dict
from sniper.pipeline import PoolPipeline

router = APIRouter(prefix="/trades", tags=["trades"])


@router.get("")
async def list_trades(
    pipeline: PoolPipeline = Depends(get_pipeline),
    limit: int = Query(50, ge=1, le=500),
) -> list[dict[str, Any]]:
    return [trade_to_dict(t) for t in await pipeline.list_recent_trades(limit)]
