from fastapi import APIRouter

from silo_pipeline.api.v1.routers import health, pipeline

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(pipeline.router)
api_router.include_router(pipeline.stages_router)

__all__ = ["api_router"]
