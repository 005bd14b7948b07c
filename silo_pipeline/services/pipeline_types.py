from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from silo_pipeline.core.roles import Role


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    id: str
    role: Role
    silos: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True, slots=True)
class ApplicationState:
    """Storage-agnostic view of an application row."""

    id: UUID
    silo_id: str
    product_category: str
    current_stage: str
    name: str | None = None
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TransitionRequest:
    application_id: UUID
    requested_stage: str
    requested_by: CallerIdentity
    requested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class TransitionRecord:
    application_id: UUID
    silo_id: str
    from_stage: str | None
    to_stage: str
    accepted: bool
    reason: str
    actor_id: str | None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class TransitionOutcome:
    application: ApplicationState
    changed: bool
    audit_warning: bool = False
