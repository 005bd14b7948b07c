from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, TypeVar
from uuid import UUID

from silo_pipeline.core import context
from silo_pipeline.core.exceptions import (
    ApplicationNotFound,
    IllegalTransition,
    StaleState,
    TransitionConflict,
    TransitionTimeout,
)
from silo_pipeline.core.settings import Settings, settings as default_settings
from silo_pipeline.services import pipeline_rules
from silo_pipeline.services.pipeline_store import PipelineStore
from silo_pipeline.services.pipeline_types import (
    ApplicationState,
    CallerIdentity,
    TransitionOutcome,
    TransitionRecord,
    TransitionRequest,
)
from silo_pipeline.services.silo_access import check_access
from silo_pipeline.services.transition_audit import TransitionAuditEmitter, emit_with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineService:
    """Moves applications between pipeline stages on behalf of a caller.

    Flow per request: load, silo check, rule check, compare-and-set, audit.
    A lost compare-and-set restarts from the load, up to the configured bound.
    """

    def __init__(
        self,
        store: PipelineStore,
        audit: TransitionAuditEmitter,
        *,
        config: Settings | None = None,
    ) -> None:
        self.store = store
        self.audit = audit
        self.config = config or default_settings

    async def _io(
        self,
        awaitable: Awaitable[T],
        *,
        application_id: UUID | None = None,
        current_stage: str | None = None,
        attempted_stage: str | None = None,
    ) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.config.pipeline_io_timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise TransitionTimeout(
                application_id=str(application_id) if application_id else None,
                current_stage=current_stage,
                attempted_stage=attempted_stage,
            ) from exc

    async def _emit(self, record: TransitionRecord) -> bool:
        return await emit_with_retry(
            self.audit,
            record,
            attempts=self.config.pipeline_audit_max_attempts,
            backoff_seconds=self.config.pipeline_audit_backoff_seconds,
            timeout_seconds=self.config.pipeline_io_timeout_seconds,
        )

    async def _load(self, application_id: UUID, attempted_stage: str | None = None) -> ApplicationState:
        application = await self._io(
            self.store.get_application(application_id),
            application_id=application_id,
            attempted_stage=attempted_stage,
        )
        if application is None:
            raise ApplicationNotFound(
                application_id=str(application_id), attempted_stage=attempted_stage
            )
        return application

    def _authorize(self, caller: CallerIdentity, silo_id: str) -> None:
        check_access(caller, silo_id, admin_bypass=self.config.admin_bypass_silo_check)
        context.set_silo_id(silo_id)

    async def request_stage_transition(
        self,
        caller: CallerIdentity,
        application_id: UUID,
        requested_stage: str,
    ) -> TransitionOutcome:
        request = TransitionRequest(
            application_id=application_id,
            requested_stage=requested_stage.strip().lower(),
            requested_by=caller,
        )
        requested = request.requested_stage
        current: str | None = None

        for attempt in range(1, self.config.pipeline_cas_max_attempts + 1):
            application = await self._load(application_id, requested)
            self._authorize(caller, application.silo_id)
            current = application.current_stage
            category = application.product_category

            if requested == current and not pipeline_rules.is_terminal(current):
                return TransitionOutcome(application=application, changed=False)

            if not pipeline_rules.can_transition(
                current, requested, category, config=self.config
            ):
                reason = pipeline_rules.rejection_reason(
                    current, requested, category, config=self.config
                )
                logged = await self._emit(
                    TransitionRecord(
                        application_id=application.id,
                        silo_id=application.silo_id,
                        from_stage=current,
                        to_stage=requested,
                        accepted=False,
                        reason=reason,
                        actor_id=caller.id,
                        timestamp=request.requested_at,
                    )
                )
                logger.info(
                    "Rejected stage transition %s -> %s for %s (%s)",
                    current,
                    requested,
                    application.id,
                    reason,
                )
                raise IllegalTransition(
                    application_id=str(application.id),
                    current_stage=current,
                    attempted_stage=requested,
                    audit_warning=not logged,
                )

            try:
                updated = await self._io(
                    self.store.compare_and_set_stage(application.id, current, requested),
                    application_id=application.id,
                    current_stage=current,
                    attempted_stage=requested,
                )
            except StaleState:
                logger.info(
                    "Stage of %s changed concurrently (attempt %s/%s), re-reading",
                    application.id,
                    attempt,
                    self.config.pipeline_cas_max_attempts,
                )
                continue

            logged = await self._emit(
                TransitionRecord(
                    application_id=updated.id,
                    silo_id=updated.silo_id,
                    from_stage=current,
                    to_stage=updated.current_stage,
                    accepted=True,
                    reason="moved",
                    actor_id=caller.id,
                    timestamp=datetime.now(timezone.utc),
                )
            )
            logger.info("Moved %s from %s to %s", updated.id, current, updated.current_stage)
            return TransitionOutcome(application=updated, changed=True, audit_warning=not logged)

        raise TransitionConflict(
            application_id=str(application_id),
            current_stage=current,
            attempted_stage=requested,
        )

    async def create_application(
        self,
        caller: CallerIdentity,
        silo_id: str,
        product_category: str,
        name: str | None = None,
    ) -> TransitionOutcome:
        self._authorize(caller, silo_id)
        category = pipeline_rules.normalize_category(product_category)
        stage = pipeline_rules.initial_stage(category, config=self.config)
        application = await self._io(
            self.store.create_application(silo_id, category, stage, name),
            attempted_stage=stage,
        )
        logged = await self._emit(
            TransitionRecord(
                application_id=application.id,
                silo_id=application.silo_id,
                from_stage=None,
                to_stage=stage,
                accepted=True,
                reason="created",
                actor_id=caller.id,
            )
        )
        logger.info("Created application %s in %s at %s", application.id, silo_id, stage)
        return TransitionOutcome(application=application, changed=True, audit_warning=not logged)

    async def list_pipeline(self, caller: CallerIdentity, silo_id: str) -> list[ApplicationState]:
        self._authorize(caller, silo_id)
        return await self._io(self.store.list_applications(silo_id))

    async def pipeline_snapshot(self, caller: CallerIdentity, silo_id: str) -> list[tuple[str, int]]:
        self._authorize(caller, silo_id)
        counts = await self._io(self.store.count_by_stage(silo_id))
        snapshot = [(stage, counts.get(stage, 0)) for stage in pipeline_rules.PIPELINE_ORDER]
        extras = sorted(stage for stage in counts if stage not in pipeline_rules.PIPELINE_ORDER)
        snapshot.extend((stage, counts[stage]) for stage in extras)
        return snapshot

    async def transition_history(
        self, caller: CallerIdentity, application_id: UUID
    ) -> list[TransitionRecord]:
        application = await self._load(application_id)
        self._authorize(caller, application.silo_id)
        return await self._io(self.audit.list_records(application.id), application_id=application.id)
