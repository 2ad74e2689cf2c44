from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from storefront.db.session import SessionLocal
from storefront.economy.payouts.errors import (
    InsufficientBalanceError,
    InvalidPayoutAmountError,
    PayoutAffiliateNotFoundError,
    PayoutNotFoundError,
    PayoutStateConflictError,
)
from storefront.economy.payouts.service import PayoutService

from .access import _require_admin

router = APIRouter(tags=["admin", "payouts"])


class PayoutRequest(BaseModel):
    affiliate_id: str = Field(min_length=1, max_length=64)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)


class PayoutCreatedResponse(BaseModel):
    payout_id: UUID
    affiliate_id: str
    sender_item_id: str
    amount: Decimal
    currency: str
    affiliate_balance: Decimal


class PayoutSubmittedRequest(BaseModel):
    provider_payout_item_id: str = Field(min_length=1, max_length=128)


class PayoutTransitionResponse(BaseModel):
    payout_id: UUID | None = None
    outcome: str
    idempotent_replay: bool


@router.post("/admin/payouts", response_model=PayoutCreatedResponse)
async def request_payout(payload: PayoutRequest, request: Request) -> PayoutCreatedResponse:
    caller = _require_admin(request)
    try:
        async with SessionLocal.begin() as session:
            result = await PayoutService.request_payout(
                session,
                affiliate_id=payload.affiliate_id,
                amount=payload.amount,
                actor=caller.user_id,
                now_utc=datetime.now(timezone.utc),
            )
    except InvalidPayoutAmountError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_PAYOUT_AMOUNT_INVALID"}) from exc
    except PayoutAffiliateNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_AFFILIATE_NOT_FOUND"}) from exc
    except InsufficientBalanceError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_INSUFFICIENT_BALANCE"}) from exc

    return PayoutCreatedResponse(
        payout_id=result.payout_id,
        affiliate_id=result.affiliate_id,
        sender_item_id=result.sender_item_id,
        amount=result.amount,
        currency=result.currency,
        affiliate_balance=result.affiliate_balance,
    )


@router.post("/admin/payouts/{payout_id}/submitted", response_model=PayoutTransitionResponse)
async def mark_payout_submitted(
    payout_id: UUID,
    payload: PayoutSubmittedRequest,
    request: Request,
) -> PayoutTransitionResponse:
    _require_admin(request)
    try:
        async with SessionLocal.begin() as session:
            result = await PayoutService.mark_submitted(
                session,
                payout_id=payout_id,
                provider_payout_item_id=payload.provider_payout_item_id,
                now_utc=datetime.now(timezone.utc),
            )
    except PayoutNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_PAYOUT_NOT_FOUND"}) from exc
    except PayoutStateConflictError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_PAYOUT_STATE_CONFLICT"}) from exc

    return PayoutTransitionResponse(
        payout_id=result.payout_id,
        outcome=result.outcome,
        idempotent_replay=result.outcome == "already_processing",
    )
