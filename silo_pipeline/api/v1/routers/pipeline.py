from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from silo_pipeline.api import deps
from silo_pipeline.core.silos import normalize_silo_id
from silo_pipeline.schemas.pipeline import (
    ApplicationCreateRequest,
    ApplicationDTO,
    PipelineListResponse,
    PipelineSnapshotResponse,
    StageCatalogueResponse,
    StageCountDTO,
    StageMoveRequest,
    TransitionHistoryResponse,
    TransitionRecordDTO,
)
from silo_pipeline.core.settings import settings
from silo_pipeline.services import pipeline_rules
from silo_pipeline.services.pipeline import PipelineService
from silo_pipeline.services.pipeline_types import CallerIdentity


router = APIRouter(prefix="/pipeline", tags=["pipeline"])
stages_router = APIRouter(prefix="/stages", tags=["pipeline"])


def _silo_or_400(silo: str) -> str:
    try:
        return normalize_silo_id(silo)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _application_dto(application) -> ApplicationDTO:
    return ApplicationDTO.model_validate(application)


@stages_router.get(
    "/{product_category}",
    response_model=StageCatalogueResponse,
    summary="Stages for a product category",
)
async def get_stage_catalogue(
    product_category: str,
    caller: CallerIdentity = Depends(deps.get_caller),
) -> StageCatalogueResponse:
    category = pipeline_rules.normalize_category(product_category)
    stages = pipeline_rules.legal_stages(category)
    return StageCatalogueResponse(
        product_category=category,
        initial_stage=pipeline_rules.initial_stage(category),
        stages=sorted(stages, key=pipeline_rules.stage_order_index),
        terminal_stages=sorted(
            (stage for stage in stages if pipeline_rules.is_terminal(stage)),
            key=pipeline_rules.stage_order_index,
        ),
        transition_policy=settings.pipeline_transition_policy,
    )


@router.get("/{silo}", response_model=PipelineListResponse, summary="Applications of a silo")
async def list_pipeline(
    silo: str,
    caller: CallerIdentity = Depends(deps.get_caller),
    service: PipelineService = Depends(deps.get_pipeline_service),
) -> PipelineListResponse:
    silo_id = _silo_or_400(silo)
    applications = await service.list_pipeline(caller, silo_id)
    items = [_application_dto(application) for application in applications]
    return PipelineListResponse(silo_id=silo_id, total=len(items), items=items)


@router.get(
    "/{silo}/snapshot",
    response_model=PipelineSnapshotResponse,
    summary="Application counts per stage",
)
async def get_pipeline_snapshot(
    silo: str,
    caller: CallerIdentity = Depends(deps.get_caller),
    service: PipelineService = Depends(deps.get_pipeline_service),
) -> PipelineSnapshotResponse:
    silo_id = _silo_or_400(silo)
    snapshot = await service.pipeline_snapshot(caller, silo_id)
    return PipelineSnapshotResponse(
        silo_id=silo_id,
        stages=[StageCountDTO(stage=stage, count=count) for stage, count in snapshot],
    )


@router.post(
    "/{silo}/applications",
    status_code=status.HTTP_201_CREATED,
    summary="Create an application at its initial stage",
)
async def create_application(
    silo: str,
    payload: ApplicationCreateRequest,
    caller: CallerIdentity = Depends(deps.get_caller),
    service: PipelineService = Depends(deps.get_pipeline_service),
) -> dict:
    silo_id = _silo_or_400(silo)
    outcome = await service.create_application(
        caller, silo_id, payload.product_category, payload.name
    )
    return {
        "code": "created",
        "message": "Application created",
        "data": _application_dto(outcome.application),
        "details": {"audit_warning": outcome.audit_warning},
    }


@router.post("/{card_id}/move", summary="Move an application to another stage")
async def move_application(
    card_id: UUID,
    payload: StageMoveRequest,
    caller: CallerIdentity = Depends(deps.get_caller),
    service: PipelineService = Depends(deps.get_pipeline_service),
) -> dict:
    outcome = await service.request_stage_transition(caller, card_id, payload.stage)
    return {
        "code": "ok",
        "message": "Stage updated" if outcome.changed else "Stage unchanged",
        "data": _application_dto(outcome.application),
        "details": {"audit_warning": outcome.audit_warning, "changed": outcome.changed},
    }


@router.get(
    "/{card_id}/history",
    response_model=TransitionHistoryResponse,
    summary="Stage transition history of an application",
)
async def get_transition_history(
    card_id: UUID,
    caller: CallerIdentity = Depends(deps.get_caller),
    service: PipelineService = Depends(deps.get_pipeline_service),
) -> TransitionHistoryResponse:
    records = await service.transition_history(caller, card_id)
    return TransitionHistoryResponse(
        application_id=card_id,
        items=[TransitionRecordDTO.model_validate(record) for record in records],
    )
