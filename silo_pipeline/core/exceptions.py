from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base class for errors surfaced to API callers with a fixed status code."""

    code = "pipeline_error"
    status_code = 400
    default_message = "Pipeline request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def details(self) -> dict[str, Any]:
        return {"error": self.code}


class AuthError(PipelineError):
    code = "auth_error"
    status_code = 401


class MissingCredential(AuthError):
    code = "missing_credential"
    default_message = "Bearer credential is required"


class InvalidCredential(AuthError):
    code = "invalid_credential"
    default_message = "Bearer credential is invalid"


class Forbidden(AuthError):
    code = "forbidden"
    status_code = 403
    default_message = "Caller has no access to this silo"

    def __init__(self, message: str | None = None, *, silo_id: str | None = None) -> None:
        super().__init__(message)
        self.silo_id = silo_id

    def details(self) -> dict[str, Any]:
        payload = super().details()
        if self.silo_id is not None:
            payload["silo_id"] = self.silo_id
        return payload


class TransitionError(PipelineError):
    """Errors of the stage transition flow; carry the stages involved."""

    code = "transition_error"
    status_code = 409

    def __init__(
        self,
        message: str | None = None,
        *,
        application_id: str | None = None,
        current_stage: str | None = None,
        attempted_stage: str | None = None,
        audit_warning: bool = False,
    ) -> None:
        super().__init__(message)
        self.application_id = application_id
        self.current_stage = current_stage
        self.attempted_stage = attempted_stage
        self.audit_warning = audit_warning

    def details(self) -> dict[str, Any]:
        payload = super().details()
        payload["current_stage"] = self.current_stage
        payload["attempted_stage"] = self.attempted_stage
        if self.application_id is not None:
            payload["application_id"] = self.application_id
        if self.audit_warning:
            payload["audit_warning"] = True
        return payload


class ApplicationNotFound(TransitionError):
    code = "not_found"
    status_code = 404
    default_message = "Application not found"


class IllegalTransition(TransitionError):
    code = "illegal_transition"
    status_code = 409
    default_message = "Stage transition not allowed"


class TransitionConflict(TransitionError):
    code = "conflict"
    status_code = 409
    default_message = "Application stage changed concurrently; refresh and retry"


class TransitionTimeout(TransitionError):
    code = "timeout"
    status_code = 504
    default_message = "Pipeline storage did not respond in time"


class StaleState(Exception):
    """Compare-and-set lost: the persisted stage no longer matches the expected one."""

    def __init__(self, application_id: str, expected_stage: str) -> None:
        super().__init__(f"Stage of {application_id} is no longer {expected_stage}")
        self.application_id = application_id
        self.expected_stage = expected_stage


class AuditWriteFailed(Exception):
    pass
