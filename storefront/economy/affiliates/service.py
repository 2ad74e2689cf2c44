from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.affiliate_codes import (
    ADMIN_APPROVAL_PREFIX,
    SWEEP_APPROVAL_PREFIX,
    generate_affiliate_code,
)
from storefront.core.clock import ensure_utc
from storefront.db.models.affiliate_applications import AffiliateApplication
from storefront.db.models.users import User
from storefront.db.repo.affiliate_applications_repo import AffiliateApplicationsRepo
from storefront.db.repo.notifications_repo import NotificationsRepo
from storefront.db.repo.users_repo import UsersRepo
from storefront.economy.affiliates.errors import (
    AffiliateCodeAllocationError,
    AlreadyAffiliateError,
    ApplicantNotFoundError,
    ApplicationAlreadyDecidedError,
    ApplicationNotFoundError,
    InvalidApplicationDecisionError,
)
from storefront.economy.affiliates.types import ApplicationDecisionResult, ApplicationSubmitResult

logger = structlog.get_logger(__name__)

SYSTEM_APPROVER = "system"
CODE_ALLOCATION_ATTEMPTS = 8
MAX_REASON_LENGTH = 500


async def _allocate_code(session: AsyncSession, *, user: User, prefix: str) -> str:
    if user.affiliate_code:
        return user.affiliate_code
    for _ in range(CODE_ALLOCATION_ATTEMPTS):
        candidate = generate_affiliate_code(prefix)
        if not await UsersRepo.affiliate_code_exists(session, candidate):
            return candidate
    raise AffiliateCodeAllocationError


async def _activate_affiliate(
    session: AsyncSession,
    *,
    user: User,
    affiliate_code: str,
    now_utc: datetime,
) -> None:
    user.is_affiliate = True
    user.affiliate_code = affiliate_code
    user.affiliate_status = "active"
    user.updated_at = now_utc
    await session.flush()


def _decision_result(
    application: AffiliateApplication,
    *,
    idempotent_replay: bool,
) -> ApplicationDecisionResult:
    return ApplicationDecisionResult(
        application_id=application.id,
        user_id=application.user_id,
        status=application.status,
        affiliate_code=application.affiliate_code,
        idempotent_replay=idempotent_replay,
    )


class AffiliateApplicationService:
    @staticmethod
    async def submit_application(
        session: AsyncSession,
        *,
        user_id: str,
        pitch: str | None,
        now_utc: datetime,
        auto_approve_after: timedelta,
    ) -> ApplicationSubmitResult:
        user = await UsersRepo.get_by_id(session, user_id)
        if user is None or user.status != "active":
            raise ApplicantNotFoundError

        existing = await AffiliateApplicationsRepo.get_open_for_user(session, user_id=user_id)
        if existing is not None:
            return ApplicationSubmitResult(
                application_id=existing.id,
                status=existing.status,
                auto_approve_at=ensure_utc(existing.auto_approve_at),
                idempotent_replay=True,
            )
        if user.is_affiliate:
            raise AlreadyAffiliateError

        application = await AffiliateApplicationsRepo.create(
            session,
            application=AffiliateApplication(
                user_id=user_id,
                status="pending",
                pitch=pitch,
                applied_at=now_utc,
                auto_approve_at=now_utc + auto_approve_after,
            ),
        )
        logger.info(
            "affiliate_application_submitted",
            application_id=str(application.id),
            user_id=user_id,
            auto_approve_at=application.auto_approve_at.isoformat(),
        )
        return ApplicationSubmitResult(
            application_id=application.id,
            status=application.status,
            auto_approve_at=application.auto_approve_at,
            idempotent_replay=False,
        )

    @staticmethod
    async def approve_application(
        session: AsyncSession,
        *,
        application_id: UUID,
        approver: str,
        now_utc: datetime,
    ) -> ApplicationDecisionResult:
        application = await AffiliateApplicationsRepo.get_by_id(session, application_id)
        if application is None:
            raise ApplicationNotFoundError
        if application.status == "approved":
            return _decision_result(application, idempotent_replay=True)
        if application.status != "pending":
            raise ApplicationAlreadyDecidedError(application.status)

        user = await UsersRepo.get_by_id_for_update(session, application.user_id)
        if user is None:
            raise ApplicantNotFoundError

        affiliate_code = await _allocate_code(session, user=user, prefix=ADMIN_APPROVAL_PREFIX)
        decided_user_id = await AffiliateApplicationsRepo.decide_if_pending(
            session,
            application_id=application_id,
            status="approved",
            decided_at=now_utc,
            approved_by=approver,
            affiliate_code=affiliate_code,
        )
        if decided_user_id is None:
            await session.refresh(application)
            if application.status == "approved":
                return _decision_result(application, idempotent_replay=True)
            raise ApplicationAlreadyDecidedError(application.status)

        await _activate_affiliate(session, user=user, affiliate_code=affiliate_code, now_utc=now_utc)
        await NotificationsRepo.create(
            session,
            user_id=user.id,
            title="You're In! 🚀",
            message="Welcome to the team. Access your dashboard now.",
            notification_type="affiliate_approved",
            created_at=now_utc,
        )
        logger.info(
            "affiliate_application_approved",
            application_id=str(application_id),
            user_id=user.id,
            approved_by=approver,
        )
        return ApplicationDecisionResult(
            application_id=application_id,
            user_id=user.id,
            status="approved",
            affiliate_code=affiliate_code,
            idempotent_replay=False,
        )

    @staticmethod
    async def reject_application(
        session: AsyncSession,
        *,
        application_id: UUID,
        approver: str,
        reason: str,
        now_utc: datetime,
    ) -> ApplicationDecisionResult:
        normalized_reason = reason.strip()
        if not normalized_reason or len(normalized_reason) > MAX_REASON_LENGTH:
            raise InvalidApplicationDecisionError

        application = await AffiliateApplicationsRepo.get_by_id(session, application_id)
        if application is None:
            raise ApplicationNotFoundError
        if application.status == "rejected":
            return _decision_result(application, idempotent_replay=True)
        if application.status != "pending":
            raise ApplicationAlreadyDecidedError(application.status)

        decided_user_id = await AffiliateApplicationsRepo.decide_if_pending(
            session,
            application_id=application_id,
            status="rejected",
            decided_at=now_utc,
            approved_by=approver,
            rejection_reason=normalized_reason,
        )
        if decided_user_id is None:
            await session.refresh(application)
            if application.status == "rejected":
                return _decision_result(application, idempotent_replay=True)
            raise ApplicationAlreadyDecidedError(application.status)

        await NotificationsRepo.create(
            session,
            user_id=decided_user_id,
            title="Application Update",
            message=f"Your application was not approved. Reason: {normalized_reason}",
            notification_type="affiliate_rejected",
            created_at=now_utc,
        )
        logger.info(
            "affiliate_application_rejected",
            application_id=str(application_id),
            user_id=decided_user_id,
            decided_by=approver,
        )
        return ApplicationDecisionResult(
            application_id=application_id,
            user_id=decided_user_id,
            status="rejected",
            affiliate_code=None,
            idempotent_replay=False,
        )

    @staticmethod
    async def run_auto_approve_sweep(
        session: AsyncSession,
        *,
        now_utc: datetime,
        batch_size: int,
    ) -> dict[str, int]:
        """Approves every pending application whose window has elapsed.

        Runs inside the caller's single transaction: either the whole batch of
        application updates, user flips and notifications commits, or none.
        """
        due = await AffiliateApplicationsRepo.list_due_for_auto_approve(
            session,
            now_utc=now_utc,
            limit=batch_size,
        )

        approved = 0
        skipped_decided = 0
        skipped_missing_user = 0
        for application in due:
            user = await UsersRepo.get_by_id_for_update(session, application.user_id)
            if user is None or user.status != "active":
                skipped_missing_user += 1
                logger.warning(
                    "affiliate_auto_approve_applicant_missing",
                    application_id=str(application.id),
                    user_id=application.user_id,
                )
                continue

            affiliate_code = await _allocate_code(session, user=user, prefix=SWEEP_APPROVAL_PREFIX)
            decided_user_id = await AffiliateApplicationsRepo.decide_if_pending(
                session,
                application_id=application.id,
                status="approved",
                decided_at=now_utc,
                approved_by=SYSTEM_APPROVER,
                affiliate_code=affiliate_code,
            )
            if decided_user_id is None:
                skipped_decided += 1
                continue

            await _activate_affiliate(
                session,
                user=user,
                affiliate_code=affiliate_code,
                now_utc=now_utc,
            )
            await NotificationsRepo.create(
                session,
                user_id=user.id,
                title="Application Approved! 🌟",
                message=(
                    "Your partner application was automatically approved. "
                    "You can now access your dashboard."
                ),
                notification_type="affiliate_approved",
                created_at=now_utc,
            )
            approved += 1

        return {
            "due_total": len(due),
            "approved_total": approved,
            "skipped_decided": skipped_decided,
            "skipped_missing_user": skipped_missing_user,
        }
