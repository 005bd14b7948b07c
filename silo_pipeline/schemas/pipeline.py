from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Stage(str, Enum):
    RECEIVED = "received"
    REQUIRES_DOCS = "requires_docs"
    IN_REVIEW = "in_review"
    STARTUP_PIPELINE = "startup_pipeline"
    READY_FOR_SIGNING = "ready_for_signing"
    OFF_TO_LENDER = "off_to_lender"
    OFFER = "offer"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class ProductCategory(str, Enum):
    STANDARD = "standard"
    STARTUP = "startup"


CATEGORY_STAGES: dict[str, frozenset[str]] = {
    ProductCategory.STANDARD.value: frozenset(
        {
            Stage.RECEIVED.value,
            Stage.REQUIRES_DOCS.value,
            Stage.IN_REVIEW.value,
            Stage.READY_FOR_SIGNING.value,
            Stage.OFF_TO_LENDER.value,
            Stage.OFFER.value,
            Stage.ACCEPTED.value,
            Stage.DECLINED.value,
        }
    ),
    ProductCategory.STARTUP.value: frozenset(
        {
            Stage.STARTUP_PIPELINE.value,
            Stage.REQUIRES_DOCS.value,
            Stage.IN_REVIEW.value,
            Stage.OFF_TO_LENDER.value,
            Stage.OFFER.value,
            Stage.ACCEPTED.value,
            Stage.DECLINED.value,
        }
    ),
}

CATEGORY_INITIAL_STAGE: dict[str, str] = {
    ProductCategory.STANDARD.value: Stage.RECEIVED.value,
    ProductCategory.STARTUP.value: Stage.STARTUP_PIPELINE.value,
}


class StageMoveRequest(BaseModel):
    # Plain string: unknown stages are rejected (and audited) by the pipeline, not by validation.
    stage: str = Field(min_length=1, max_length=50)

    @field_validator("stage")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip().lower()


class ApplicationCreateRequest(BaseModel):
    product_category: str = Field(min_length=1, max_length=50)
    name: str | None = Field(default=None, max_length=255)

    @field_validator("product_category")
    @classmethod
    def _normalize_category(cls, value: str) -> str:
        return value.strip().lower()


class ApplicationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    silo_id: str
    product_category: str
    current_stage: str
    name: str | None = None
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PipelineListResponse(BaseModel):
    silo_id: str
    total: int
    items: list[ApplicationDTO]


class StageCountDTO(BaseModel):
    stage: str
    count: int


class PipelineSnapshotResponse(BaseModel):
    silo_id: str
    stages: list[StageCountDTO]


class TransitionRecordDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    application_id: UUID
    silo_id: str
    from_stage: str | None = None
    to_stage: str
    accepted: bool
    reason: str
    actor_id: str | None = None
    timestamp: datetime


class TransitionHistoryResponse(BaseModel):
    application_id: UUID
    items: list[TransitionRecordDTO]


class StageCatalogueResponse(BaseModel):
    product_category: str
    initial_stage: str
    stages: list[str]
    terminal_stages: list[str]
    transition_policy: str
