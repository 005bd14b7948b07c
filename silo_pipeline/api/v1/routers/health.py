from fastapi import APIRouter

from silo_pipeline.core.health import live_payload, ready_payload, status_summary_payload
from silo_pipeline.core.limiter import limiter

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Process is up")
@limiter.exempt
async def pipeline_live() -> dict:
    return await live_payload()


@router.get("/health/ready", summary="Pipeline tables are reachable")
@limiter.exempt
async def pipeline_ready() -> dict:
    return await ready_payload()


@router.get("/status/summary", tags=["status"], summary="Readiness plus active pipeline configuration")
@limiter.exempt
async def pipeline_status() -> dict:
    return await status_summary_payload()
