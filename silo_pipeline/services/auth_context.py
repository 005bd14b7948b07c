from __future__ import annotations

from typing import Any, Callable, Mapping

from silo_pipeline.core.exceptions import InvalidCredential, MissingCredential
from silo_pipeline.core.roles import Role
from silo_pipeline.core.security import decode_token
from silo_pipeline.core.silos import normalize_silo_id
from silo_pipeline.services.pipeline_types import CallerIdentity

TokenVerifier = Callable[[str], Mapping[str, Any]]


def _claims_to_silos(raw: Any) -> frozenset[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str) or not isinstance(raw, (list, tuple, set, frozenset)):
        raise InvalidCredential("Credential silos claim must be a list")
    silos: set[str] = set()
    for value in raw:
        if not isinstance(value, str):
            raise InvalidCredential("Credential silos claim must contain strings")
        try:
            silos.add(normalize_silo_id(value))
        except ValueError as exc:
            raise InvalidCredential(f"Credential carries an invalid silo: {value!r}") from exc
    return frozenset(silos)


def identity_from_claims(claims: Mapping[str, Any]) -> CallerIdentity:
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise InvalidCredential("Credential has no subject")
    role = Role.parse(claims.get("role"))
    if role is None:
        raise InvalidCredential("Credential has no recognised role")
    return CallerIdentity(id=subject.strip(), role=role, silos=_claims_to_silos(claims.get("silos")))


def resolve_caller(credential: str | None, *, verify: TokenVerifier = decode_token) -> CallerIdentity:
    """Map a bearer credential to the caller identity.

    Signature and expiry checks belong to ``verify``; this function only owns
    the claims-to-identity mapping. ``silos`` defaults to an empty set.
    """
    if credential is None or not credential.strip():
        raise MissingCredential()
    try:
        claims = verify(credential.strip())
    except ValueError as exc:
        raise InvalidCredential(str(exc) or None) from exc
    return identity_from_claims(claims)
