from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select

from silo_pipeline.core.settings import settings
from silo_pipeline.db.session import engine
from silo_pipeline.models import Application, StageTransition

APP_VERSION = "0.1.0"

PIPELINE_TABLES = (Application, StageTransition)


async def _check_table(model) -> dict[str, str]:
    """Readiness of one pipeline table: a one-row read must succeed."""
    try:
        async with engine.connect() as conn:
            await conn.execute(select(model.__table__.c.id).limit(1))
        return {"status": "ok"}
    except Exception as exc:  # pragma: no cover - exercised in runtime
        return {"status": "error", "error": str(exc)}


async def _collect_checks() -> dict[str, dict[str, Any]]:
    return {model.__tablename__: await _check_table(model) for model in PIPELINE_TABLES}


def _pipeline_config() -> dict[str, Any]:
    return {
        "transition_policy": settings.pipeline_transition_policy,
        "default_category": settings.pipeline_default_category,
        "default_initial_stage": settings.pipeline_default_initial_stage,
        "cas_max_attempts": settings.pipeline_cas_max_attempts,
        "audit_max_attempts": settings.pipeline_audit_max_attempts,
        "admin_bypass_silo_check": settings.admin_bypass_silo_check,
    }


async def live_payload() -> dict[str, str]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def ready_payload() -> dict[str, Any]:
    checks = await _collect_checks()
    ready = all(check.get("status") == "ok" for check in checks.values())
    return {
        "status": "ok" if ready else "degraded",
        "ready": ready,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }


async def status_summary_payload() -> dict[str, Any]:
    payload = await ready_payload()
    payload["version"] = APP_VERSION
    payload["pipeline"] = _pipeline_config()
    return payload
