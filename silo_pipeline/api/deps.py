from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from silo_pipeline.core.context import set_actor_id
from silo_pipeline.core.exceptions import InvalidCredential
from silo_pipeline.db.session import AsyncSessionLocal, get_db
from silo_pipeline.services.auth_context import resolve_caller
from silo_pipeline.services.pipeline import PipelineService
from silo_pipeline.services.pipeline_store import PipelineStore, SqlAlchemyPipelineStore
from silo_pipeline.services.pipeline_types import CallerIdentity
from silo_pipeline.services.transition_audit import (
    SqlAlchemyTransitionAuditEmitter,
    TransitionAuditEmitter,
)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


async def get_caller(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CallerIdentity:
    if credentials is None and request.headers.get("Authorization", "").strip():
        # Header present but not "Bearer <token>", e.g. Basic auth or a bare scheme.
        raise InvalidCredential("Authorization header must carry a Bearer token")
    caller = resolve_caller(credentials.credentials if credentials else None)
    set_actor_id(caller.id)
    return caller


async def get_pipeline_store(db: AsyncSession = Depends(get_db_session)) -> PipelineStore:
    return SqlAlchemyPipelineStore(db)


async def get_audit_emitter() -> TransitionAuditEmitter:
    return SqlAlchemyTransitionAuditEmitter(AsyncSessionLocal)


async def get_pipeline_service(
    store: PipelineStore = Depends(get_pipeline_store),
    audit: TransitionAuditEmitter = Depends(get_audit_emitter),
) -> PipelineService:
    return PipelineService(store, audit)
