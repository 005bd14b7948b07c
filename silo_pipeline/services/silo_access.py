from __future__ import annotations

from silo_pipeline.core.exceptions import Forbidden
from silo_pipeline.core.settings import settings
from silo_pipeline.services.pipeline_types import CallerIdentity


def can_access(caller: CallerIdentity, target_silo: str, *, admin_bypass: bool | None = None) -> bool:
    if admin_bypass is None:
        admin_bypass = settings.admin_bypass_silo_check
    if admin_bypass and caller.is_admin:
        return True
    return target_silo in caller.silos


def check_access(caller: CallerIdentity, target_silo: str, *, admin_bypass: bool | None = None) -> None:
    """Raise Forbidden unless the caller may touch data of ``target_silo``."""
    if not can_access(caller, target_silo, admin_bypass=admin_bypass):
        raise Forbidden(silo_id=target_silo)
