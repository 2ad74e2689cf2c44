from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from pydantic import BaseModel, Field

from storefront.db.session import SessionLocal
from storefront.economy.memberships.credits import StoreCreditService
from storefront.economy.memberships.errors import (
    InvalidStoreCreditAmountError,
    InvalidTrialGrantError,
    MembershipUserNotFoundError,
    StoreCreditUserNotFoundError,
    StoreCreditWouldGoNegativeError,
)
from storefront.economy.memberships.service import MembershipService

from .access import _require_admin

router = APIRouter(tags=["admin", "members"])
logger = structlog.get_logger(__name__)


class GrantTrialRequest(BaseModel):
    plan: str = Field(min_length=1, max_length=64)
    days: int = Field(ge=1, le=365)


class GrantTrialResponse(BaseModel):
    user_id: str
    plan: str
    trial_expires_at: datetime
    credit_currency: str


class StoreCreditRequest(BaseModel):
    amount: Decimal = Field(max_digits=12, decimal_places=2)


class StoreCreditResponse(BaseModel):
    user_id: str
    delta: Decimal
    store_credit: Decimal
    idempotent_replay: bool


@router.post("/admin/users/{user_id}/trial", response_model=GrantTrialResponse)
async def grant_trial(
    user_id: str,
    payload: GrantTrialRequest,
    request: Request,
) -> GrantTrialResponse:
    caller = _require_admin(request)
    try:
        async with SessionLocal.begin() as session:
            result = await MembershipService.grant_trial(
                session,
                user_id=user_id,
                plan=payload.plan,
                days=payload.days,
                now_utc=datetime.now(timezone.utc),
            )
    except InvalidTrialGrantError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_TRIAL_INVALID"}) from exc
    except MembershipUserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc

    logger.info("admin_trial_granted", user_id=user_id, plan=result.plan, admin_id=caller.user_id)
    return GrantTrialResponse(
        user_id=result.user_id,
        plan=result.plan,
        trial_expires_at=result.trial_expires_at,
        credit_currency=result.credit_currency,
    )


@router.post("/admin/users/{user_id}/store-credit", response_model=StoreCreditResponse)
async def adjust_store_credit(
    user_id: str,
    payload: StoreCreditRequest,
    request: Request,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key", max_length=128),
) -> StoreCreditResponse:
    caller = _require_admin(request)
    try:
        async with SessionLocal.begin() as session:
            result = await StoreCreditService.adjust_store_credit(
                session,
                user_id=user_id,
                amount=payload.amount,
                actor=caller.user_id,
                now_utc=datetime.now(timezone.utc),
                idempotency_key=idempotency_key,
            )
    except InvalidStoreCreditAmountError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_STORE_CREDIT_AMOUNT_INVALID"}) from exc
    except StoreCreditUserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc
    except StoreCreditWouldGoNegativeError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_STORE_CREDIT_INSUFFICIENT"}) from exc

    return StoreCreditResponse(
        user_id=result.user_id,
        delta=result.delta,
        store_credit=result.store_credit,
        idempotent_replay=result.idempotent_replay,
    )
