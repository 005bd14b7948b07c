from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import asdict
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from silo_pipeline.core.exceptions import AuditWriteFailed
from silo_pipeline.core.logging import get_audit_logger
from silo_pipeline.models.stage_transition import StageTransition
from silo_pipeline.services.pipeline_types import TransitionRecord

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


class TransitionAuditEmitter(abc.ABC):
    """Append-only sink for transition records."""

    @abc.abstractmethod
    async def record(self, record: TransitionRecord) -> None:
        """Persist ``record``; raise AuditWriteFailed when the sink refuses it."""

    @abc.abstractmethod
    async def list_records(self, application_id: UUID) -> list[TransitionRecord]: ...


def _to_record(row: StageTransition) -> TransitionRecord:
    return TransitionRecord(
        application_id=row.application_id,
        silo_id=row.silo_id,
        from_stage=row.from_stage,
        to_stage=row.to_stage,
        accepted=row.accepted,
        reason=row.reason,
        actor_id=row.actor_id,
        timestamp=row.occurred_at,
    )


class SqlAlchemyTransitionAuditEmitter(TransitionAuditEmitter):
    """Writes each record in its own short session, apart from the stage update."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def record(self, record: TransitionRecord) -> None:
        try:
            async with self.session_factory() as session:
                session.add(
                    StageTransition(
                        application_id=record.application_id,
                        silo_id=record.silo_id,
                        from_stage=record.from_stage,
                        to_stage=record.to_stage,
                        accepted=record.accepted,
                        reason=record.reason,
                        actor_id=record.actor_id,
                        occurred_at=record.timestamp,
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise AuditWriteFailed(str(exc)) from exc
        audit_logger.info(
            "stage_transition.%s",
            "accepted" if record.accepted else "rejected",
            extra={"event": asdict(record)},
        )

    async def list_records(self, application_id: UUID) -> list[TransitionRecord]:
        async with self.session_factory() as session:
            stmt = (
                select(StageTransition)
                .where(StageTransition.application_id == application_id)
                .order_by(StageTransition.id.asc())
            )
            result = await session.execute(stmt)
            return [_to_record(row) for row in result.scalars().all()]


async def emit_with_retry(
    emitter: TransitionAuditEmitter,
    record: TransitionRecord,
    *,
    attempts: int = 3,
    backoff_seconds: float = 0.1,
    timeout_seconds: float | None = None,
) -> bool:
    """Try ``attempts`` times with exponential backoff.

    Returns False once the budget is spent; the caller reports that as an
    audit warning and keeps the stage change.
    """
    for attempt in range(1, attempts + 1):
        try:
            if timeout_seconds is None:
                await emitter.record(record)
            else:
                await asyncio.wait_for(emitter.record(record), timeout=timeout_seconds)
            return True
        except (AuditWriteFailed, asyncio.TimeoutError) as exc:
            logger.warning(
                "Audit write attempt %s/%s failed for application %s: %s",
                attempt,
                attempts,
                record.application_id,
                str(exc) or type(exc).__name__,
            )
            if attempt < attempts and backoff_seconds > 0:
                await asyncio.sleep(backoff_seconds * (2 ** (attempt - 1)))
    audit_logger.warning(
        "stage_transition.audit_incomplete",
        extra={"event": asdict(record)},
    )
    return False
