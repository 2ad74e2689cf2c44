from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import jwt

ADMIN_ROLE = "admin"


class CallerAuthenticationError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class Caller:
    user_id: str
    email: str | None
    has_admin_claim: bool


def _has_admin_claim(claims: Mapping[str, object]) -> bool:
    if claims.get("admin") is True:
        return True
    if claims.get("role") == ADMIN_ROLE:
        return True
    app_metadata = claims.get("app_metadata")
    if isinstance(app_metadata, Mapping):
        return app_metadata.get("role") == ADMIN_ROLE or app_metadata.get("admin") is True
    return False


def decode_caller(authorization: str | None, *, secret: str, algorithm: str) -> Caller:
    if not authorization or not secret:
        raise CallerAuthenticationError
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise CallerAuthenticationError

    try:
        claims = jwt.decode(
            token.strip(),
            secret,
            algorithms=[algorithm],
            options={"require": ["sub", "exp"], "verify_aud": False},
        )
    except jwt.InvalidTokenError as exc:
        raise CallerAuthenticationError from exc

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise CallerAuthenticationError
    email = claims.get("email")
    return Caller(
        user_id=subject.strip(),
        email=email.strip().lower() if isinstance(email, str) and email.strip() else None,
        has_admin_claim=_has_admin_claim(claims),
    )


def is_authorized_admin(caller: Caller | None, *, owner_email: str) -> bool:
    """The single admin check used by every admin-gated operation."""
    if caller is None:
        return False
    if caller.has_admin_claim:
        return True
    normalized_owner = owner_email.strip().lower()
    return bool(normalized_owner) and caller.email == normalized_owner
