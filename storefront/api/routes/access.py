from __future__ import annotations

import structlog
from fastapi import HTTPException, Request

from storefront.core.config import get_settings
from storefront.services.admin_auth import (
    Caller,
    CallerAuthenticationError,
    decode_caller,
    is_authorized_admin,
)

logger = structlog.get_logger(__name__)


def _require_caller(request: Request) -> Caller:
    settings = get_settings()
    try:
        return decode_caller(
            request.headers.get("Authorization"),
            secret=settings.auth_jwt_secret,
            algorithm=settings.auth_jwt_algorithm,
        )
    except CallerAuthenticationError:
        logger.warning("caller_authentication_failed", path=request.url.path)
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHENTICATED"}) from None


def _require_admin(request: Request) -> Caller:
    caller = _require_caller(request)
    if not is_authorized_admin(caller, owner_email=get_settings().admin_owner_email):
        logger.warning("admin_access_denied", caller_id=caller.user_id, path=request.url.path)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})
    return caller
