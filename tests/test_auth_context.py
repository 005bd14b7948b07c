from datetime import timedelta

import pytest

from silo_pipeline.core import security
from silo_pipeline.core.exceptions import InvalidCredential, MissingCredential
from silo_pipeline.core.roles import Role
from silo_pipeline.services.auth_context import identity_from_claims, resolve_caller


def _verifier(claims):
    def _verify(_token):
        return claims

    return _verify


def _rejecting_verifier(_token):
    raise ValueError("Invalid token")


@pytest.mark.parametrize("credential", [None, "", "   "])
def test_missing_credential(credential):
    with pytest.raises(MissingCredential):
        resolve_caller(credential, verify=_verifier({"sub": "u", "role": "staff"}))


def test_verifier_rejection_is_invalid_credential():
    with pytest.raises(InvalidCredential):
        resolve_caller("token", verify=_rejecting_verifier)


def test_claims_map_to_identity():
    caller = resolve_caller(
        "token",
        verify=_verifier({"sub": "user-7", "role": "Marketing", "silos": ["BF", "slf"]}),
    )
    assert caller.id == "user-7"
    assert caller.role is Role.MARKETING
    assert caller.silos == frozenset({"bf", "slf"})


def test_absent_silos_default_to_empty():
    caller = identity_from_claims({"sub": "user-1", "role": "lender"})
    assert caller.silos == frozenset()


@pytest.mark.parametrize(
    "claims",
    [
        {"role": "staff"},
        {"sub": "", "role": "staff"},
        {"sub": "user-1"},
        {"sub": "user-1", "role": "superhero"},
        {"sub": "user-1", "role": "staff", "silos": "bf"},
        {"sub": "user-1", "role": "staff", "silos": [1, 2]},
        {"sub": "user-1", "role": "staff", "silos": ["no spaces allowed"]},
    ],
)
def test_malformed_claims_are_invalid(claims):
    with pytest.raises(InvalidCredential):
        identity_from_claims(claims)


def test_identity_is_immutable():
    caller = identity_from_claims({"sub": "user-1", "role": "staff", "silos": ["bf"]})
    with pytest.raises(Exception):
        caller.role = Role.ADMIN  # type: ignore[misc]


def test_shared_secret_round_trip(shared_secret_tokens):
    token = shared_secret_tokens(role="admin", silos=["bf", "slf"], subject="user-9")
    caller = resolve_caller(token)
    assert caller.id == "user-9"
    assert caller.role is Role.ADMIN
    assert caller.silos == frozenset({"bf", "slf"})


def test_expired_token_is_invalid(shared_secret_tokens):
    token = security.create_access_token("user-1", "staff", ["bf"], expires_delta=timedelta(seconds=-5))
    with pytest.raises(InvalidCredential):
        resolve_caller(token)


def test_tampered_token_is_invalid(shared_secret_tokens):
    token = shared_secret_tokens()
    header, payload, signature = token.split(".")
    with pytest.raises(InvalidCredential):
        resolve_caller(f"{header}.{payload}.{signature[::-1]}")


def test_rsa_round_trip(patch_jwt_keys):
    token = security.create_access_token("user-xyz", "referrer", ["bf"])
    decoded = security.decode_token(token)
    assert decoded["sub"] == "user-xyz"
    assert decoded["type"] == "access"
    assert decoded["silos"] == ["bf"]
    assert "iat" in decoded

    caller = resolve_caller(token)
    assert caller.role is Role.REFERRER


def test_decode_rejects_wrong_token_type(shared_secret_tokens):
    token = shared_secret_tokens()
    with pytest.raises(ValueError):
        security.decode_token(token, expected_type="refresh")
