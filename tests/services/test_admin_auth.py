from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from storefront.services.admin_auth import (
    Caller,
    CallerAuthenticationError,
    decode_caller,
    is_authorized_admin,
)

SECRET = "admin-token-secret-for-tests-0123456789"


def _token(**claims: object) -> str:
    payload = {"sub": "user_1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)}
    payload.update(claims)
    return jwt.encode(payload, SECRET, algorithm="HS256")


def test_decode_caller_reads_subject_email_and_admin_claim() -> None:
    caller = decode_caller(f"Bearer {_token(email='Owner@Example.com ', role='admin')}", secret=SECRET, algorithm="HS256")
    assert caller == Caller(user_id="user_1", email="owner@example.com", has_admin_claim=True)


def test_admin_flag_inside_app_metadata_counts_as_claim() -> None:
    caller = decode_caller(
        f"Bearer {_token(app_metadata={'role': 'admin'})}",
        secret=SECRET,
        algorithm="HS256",
    )
    assert caller.has_admin_claim is True


@pytest.mark.parametrize(
    "authorization",
    [None, "", "Token abc", "Bearer ", "Bearer not-a-jwt"],
)
def test_malformed_authorization_is_rejected(authorization: str | None) -> None:
    with pytest.raises(CallerAuthenticationError):
        decode_caller(authorization, secret=SECRET, algorithm="HS256")


def test_expired_token_is_rejected() -> None:
    token = _token(exp=datetime.now(timezone.utc) - timedelta(minutes=1))
    with pytest.raises(CallerAuthenticationError):
        decode_caller(f"Bearer {token}", secret=SECRET, algorithm="HS256")


def test_token_signed_with_other_key_is_rejected() -> None:
    token = jwt.encode(
        {"sub": "user_1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "some-other-secret-key-that-is-long-enough",
        algorithm="HS256",
    )
    with pytest.raises(CallerAuthenticationError):
        decode_caller(f"Bearer {token}", secret=SECRET, algorithm="HS256")


def test_empty_secret_rejects_all_tokens() -> None:
    with pytest.raises(CallerAuthenticationError):
        decode_caller(f"Bearer {_token()}", secret="", algorithm="HS256")


def test_is_authorized_admin_by_claim_or_owner_email() -> None:
    by_claim = Caller(user_id="a", email=None, has_admin_claim=True)
    by_email = Caller(user_id="b", email="owner@example.com", has_admin_claim=False)
    member = Caller(user_id="c", email="member@example.com", has_admin_claim=False)

    assert is_authorized_admin(by_claim, owner_email="")
    assert is_authorized_admin(by_email, owner_email=" Owner@Example.com")
    assert not is_authorized_admin(member, owner_email="owner@example.com")
    assert not is_authorized_admin(by_email, owner_email="")
    assert not is_authorized_admin(None, owner_email="owner@example.com")
