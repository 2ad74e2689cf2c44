from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from storefront.core.config import get_settings
from storefront.db.session import SessionLocal
from storefront.economy.affiliates.errors import (
    AffiliateCodeAllocationError,
    AlreadyAffiliateError,
    ApplicantNotFoundError,
    ApplicationAlreadyDecidedError,
    ApplicationNotFoundError,
    InvalidApplicationDecisionError,
)
from storefront.economy.affiliates.service import AffiliateApplicationService

from .access import _require_admin, _require_caller

router = APIRouter(tags=["affiliates"])
logger = structlog.get_logger(__name__)

REVIEW_DECISIONS = {"approve", "reject"}


class AffiliateApplicationRequest(BaseModel):
    pitch: str | None = Field(default=None, max_length=2000)


class AffiliateApplicationResponse(BaseModel):
    application_id: UUID
    status: str
    auto_approve_at: datetime
    idempotent_replay: bool


class ApplicationReviewRequest(BaseModel):
    decision: str = Field(min_length=1, max_length=16)
    reason: str | None = Field(default=None, max_length=500)


class ApplicationReviewResponse(BaseModel):
    application_id: UUID
    user_id: str
    status: str
    affiliate_code: str | None = None
    idempotent_replay: bool


@router.post("/affiliate-applications", response_model=AffiliateApplicationResponse)
async def submit_affiliate_application(
    payload: AffiliateApplicationRequest,
    request: Request,
) -> AffiliateApplicationResponse:
    caller = _require_caller(request)
    window_minutes = max(0, int(get_settings().affiliate_auto_approve_minutes))
    try:
        async with SessionLocal.begin() as session:
            result = await AffiliateApplicationService.submit_application(
                session,
                user_id=caller.user_id,
                pitch=payload.pitch,
                now_utc=datetime.now(timezone.utc),
                auto_approve_after=timedelta(minutes=window_minutes),
            )
    except ApplicantNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc
    except AlreadyAffiliateError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_ALREADY_AFFILIATE"}) from exc

    return AffiliateApplicationResponse(
        application_id=result.application_id,
        status=result.status,
        auto_approve_at=result.auto_approve_at,
        idempotent_replay=result.idempotent_replay,
    )


@router.post(
    "/admin/affiliate-applications/{application_id}/review",
    response_model=ApplicationReviewResponse,
)
async def review_affiliate_application(
    application_id: UUID,
    payload: ApplicationReviewRequest,
    request: Request,
) -> ApplicationReviewResponse:
    caller = _require_admin(request)
    decision = payload.decision.strip().lower()
    if decision not in REVIEW_DECISIONS:
        raise HTTPException(status_code=400, detail={"code": "E_REVIEW_DECISION_INVALID"})

    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            if decision == "approve":
                result = await AffiliateApplicationService.approve_application(
                    session,
                    application_id=application_id,
                    approver=caller.user_id,
                    now_utc=now_utc,
                )
            else:
                result = await AffiliateApplicationService.reject_application(
                    session,
                    application_id=application_id,
                    approver=caller.user_id,
                    reason=payload.reason or "",
                    now_utc=now_utc,
                )
    except InvalidApplicationDecisionError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_REJECTION_REASON_REQUIRED"}) from exc
    except ApplicationNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_APPLICATION_NOT_FOUND"}) from exc
    except ApplicantNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc
    except ApplicationAlreadyDecidedError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "E_APPLICATION_ALREADY_DECIDED", "status": exc.current_status},
        ) from exc
    except AffiliateCodeAllocationError as exc:
        logger.error("affiliate_code_allocation_failed", application_id=str(application_id))
        raise HTTPException(status_code=503, detail={"code": "E_AFFILIATE_CODE_UNAVAILABLE"}) from exc

    logger.info(
        "affiliate_application_reviewed",
        application_id=str(application_id),
        decision=decision,
        admin_id=caller.user_id,
        idempotent_replay=result.idempotent_replay,
    )
    return ApplicationReviewResponse(
        application_id=result.application_id,
        user_id=result.user_id,
        status=result.status,
        affiliate_code=result.affiliate_code,
        idempotent_replay=result.idempotent_replay,
    )
