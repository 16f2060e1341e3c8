"""Start/stop the sniper pipeline."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from sniper.api.dependencies import get_pipeline, limiter
from sniper.pipeline import PoolPipeline

router = APIRouter(tags=["control"])


class ControlResponse(BaseModel):
    status: str
    changed: bool


@router.post("/start", response_model=ControlResponse)
@limiter.limit("30/minute")
async def start(request: Request, pipeline: PoolPipeline = Depends(get_pipeline)) -> ControlResponse:
    changed = await pipeline.start()
    return ControlResponse(status="started", changed=changed)


@router.post("/stop", response_model=ControlResponse)
@limiter.limit("30/minute")
async def stop(request: Request, pipeline: PoolPipeline = Depends(get_pipeline)) -> ControlResponse:
    changed = await pipeline.stop()
    return ControlResponse(status="stopped", changed=changed)
