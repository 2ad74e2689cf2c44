from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from storefront.core.config import get_settings
from storefront.db.session import SessionLocal
from storefront.economy.accounts.errors import AccountNotFoundError, SelfDeletionError
from storefront.economy.accounts.service import AccountService
from storefront.economy.broadcasts.errors import InvalidBroadcastTargetError, NoActiveDevicesError
from storefront.economy.broadcasts.service import BroadcastService

from .access import _require_admin

router = APIRouter(tags=["admin", "users"])
logger = structlog.get_logger(__name__)


class UserDeletionResponse(BaseModel):
    user_id: str
    mode: str
    idempotent_replay: bool
    removed: dict[str, int]


class BulkPushRequest(BaseModel):
    target_type: str = Field(min_length=1, max_length=16)
    target_value: str | None = Field(default=None, max_length=64)
    title: str = Field(min_length=1, max_length=120)
    body: str = Field(min_length=1, max_length=1000)
    link: str | None = Field(default=None, max_length=512)
    image_url: str | None = Field(default=None, max_length=1024)


class BulkPushResponse(BaseModel):
    target_type: str
    user_count: int
    device_count: int
    outbox_event_id: int


@router.delete("/admin/users/{user_id}", response_model=UserDeletionResponse)
async def delete_user(
    user_id: str,
    request: Request,
    soft: bool = Query(default=False),
) -> UserDeletionResponse:
    caller = _require_admin(request)
    try:
        async with SessionLocal.begin() as session:
            result = await AccountService.delete_user(
                session,
                user_id=user_id,
                actor_id=caller.user_id,
                soft=soft,
                now_utc=datetime.now(timezone.utc),
            )
    except SelfDeletionError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_SELF_DELETION"}) from exc
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc

    return UserDeletionResponse(
        user_id=result.user_id,
        mode=result.mode,
        idempotent_replay=result.idempotent_replay,
        removed=result.removed,
    )


@router.post("/admin/push", response_model=BulkPushResponse)
async def send_bulk_push(payload: BulkPushRequest, request: Request) -> BulkPushResponse:
    caller = _require_admin(request)
    try:
        async with SessionLocal.begin() as session:
            result = await BroadcastService.send_bulk_push(
                session,
                target_type=payload.target_type,
                target_value=payload.target_value,
                title=payload.title,
                body=payload.body,
                link=payload.link,
                image_url=payload.image_url,
                actor=caller.user_id,
                now_utc=datetime.now(timezone.utc),
                audience_limit=max(1, int(get_settings().push_broadcast_all_limit)),
            )
    except InvalidBroadcastTargetError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_PUSH_TARGET_INVALID"}) from exc
    except NoActiveDevicesError as exc:
        raise HTTPException(
            status_code=404,
            detail={
                "code": "E_NO_ACTIVE_DEVICES",
                "message": "No active devices found for this target.",
            },
        ) from exc

    logger.info(
        "admin_bulk_push_queued",
        target_type=result.target_type,
        user_count=result.user_count,
        device_count=result.device_count,
        admin_id=caller.user_id,
    )
    return BulkPushResponse(
        target_type=result.target_type,
        user_count=result.user_count,
        device_count=result.device_count,
        outbox_event_id=result.outbox_event_id,
    )
