from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.clock import ensure_utc
from storefront.db.repo.notifications_repo import NotificationsRepo
from storefront.db.repo.users_repo import UsersRepo
from storefront.economy.memberships.errors import (
    InvalidTrialGrantError,
    MembershipUserNotFoundError,
)
from storefront.economy.memberships.plans import trial_credit_currency
from storefront.economy.memberships.types import MembershipUpdateResult, TrialGrantResult

logger = structlog.get_logger(__name__)

DEFAULT_EXTENSION_DAYS = 30
MAX_TRIAL_DAYS = 365
FAILURE_IGNORED_STATUSES = {"cancelled_pending", "expired"}


class MembershipService:
    @staticmethod
    async def extend_membership(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
        paid_at: datetime | None = None,
        extension_days: int = DEFAULT_EXTENSION_DAYS,
    ) -> MembershipUpdateResult:
        """Adds one billing period on top of max(current expiry, now).

        The user row stays locked until the caller's transaction ends, so two
        payments for the same member stack instead of overwriting each other.
        A payment made before a recorded cancellation still extends the period
        but does not lift the cancellation.
        """
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise MembershipUserNotFoundError

        current_expiry = ensure_utc(user.membership_expiry)
        base = current_expiry if current_expiry is not None and current_expiry > now_utc else now_utc
        new_expiry = base + timedelta(days=extension_days)

        user.membership_expiry = new_expiry
        user.last_payment_at = now_utc
        user.updated_at = now_utc

        cancelled_at = ensure_utc(user.subscription_cancelled_at)
        paid_before_cancellation = (
            user.membership_status == "cancelled_pending"
            and cancelled_at is not None
            and paid_at is not None
            and paid_at <= cancelled_at
        )
        if paid_before_cancellation:
            user.vault_ladder_reset_at = new_expiry
            logger.info(
                "membership_extended_after_cancellation",
                user_id=user_id,
                membership_expiry=new_expiry.isoformat(),
            )
        else:
            user.membership_status = "active"
            user.payment_failed_at = None
            user.vault_access_locked = False
            user.subscription_cancelled_at = None
            user.cancelled_subscription_id = None
            user.vault_ladder_reset_at = None

        await session.flush()
        return MembershipUpdateResult(
            user_id=user_id,
            membership_status=user.membership_status,
            membership_expiry=new_expiry,
            applied=True,
        )

    @staticmethod
    async def handle_payment_failure(
        session: AsyncSession,
        *,
        user_id: str,
        now_utc: datetime,
    ) -> MembershipUpdateResult:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise MembershipUserNotFoundError

        expiry = ensure_utc(user.membership_expiry)
        if user.membership_status in FAILURE_IGNORED_STATUSES:
            logger.info(
                "membership_payment_failure_ignored",
                user_id=user_id,
                membership_status=user.membership_status,
            )
            return MembershipUpdateResult(
                user_id=user_id,
                membership_status=user.membership_status,
                membership_expiry=expiry,
                applied=False,
            )

        if user.membership_status == "grace_period":
            return MembershipUpdateResult(
                user_id=user_id,
                membership_status=user.membership_status,
                membership_expiry=expiry,
                applied=False,
                idempotent_replay=True,
            )

        user.membership_status = "grace_period"
        user.payment_failed_at = now_utc
        user.vault_access_locked = True
        user.updated_at = now_utc
        await session.flush()
        return MembershipUpdateResult(
            user_id=user_id,
            membership_status=user.membership_status,
            membership_expiry=expiry,
            applied=True,
        )

    @staticmethod
    async def handle_subscription_cancelled(
        session: AsyncSession,
        *,
        user_id: str,
        subscription_id: str | None,
        now_utc: datetime,
    ) -> MembershipUpdateResult:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise MembershipUserNotFoundError

        expiry = ensure_utc(user.membership_expiry)
        if (
            user.membership_status == "cancelled_pending"
            and user.cancelled_subscription_id == subscription_id
        ):
            return MembershipUpdateResult(
                user_id=user_id,
                membership_status=user.membership_status,
                membership_expiry=expiry,
                applied=False,
                idempotent_replay=True,
            )

        # Access runs until the already paid expiry; nothing is cut off here.
        user.membership_status = "cancelled_pending"
        user.subscription_cancelled_at = now_utc
        user.cancelled_subscription_id = subscription_id
        user.vault_ladder_reset_at = expiry
        user.updated_at = now_utc
        await session.flush()
        return MembershipUpdateResult(
            user_id=user_id,
            membership_status=user.membership_status,
            membership_expiry=expiry,
            applied=True,
        )

    @staticmethod
    async def grant_trial(
        session: AsyncSession,
        *,
        user_id: str,
        plan: str,
        days: int,
        now_utc: datetime,
    ) -> TrialGrantResult:
        normalized_plan = plan.strip()
        if not normalized_plan or days <= 0 or days > MAX_TRIAL_DAYS:
            raise InvalidTrialGrantError

        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise MembershipUserNotFoundError

        trial_expires_at = now_utc + timedelta(days=days)
        credit_currency = trial_credit_currency(normalized_plan)
        user.membership_tier = normalized_plan
        user.membership_status = "trial"
        user.trial_expires_at = trial_expires_at
        user.credit_currency = credit_currency
        user.updated_at = now_utc

        await NotificationsRepo.create(
            session,
            user_id=user_id,
            title="VIP Trial Activated! 🎁",
            message=(
                f"You have been gifted a {days}-day trial for the {normalized_plan} membership. "
                "Enjoy!"
            ),
            notification_type="trial_granted",
            created_at=now_utc,
        )
        return TrialGrantResult(
            user_id=user_id,
            plan=normalized_plan,
            trial_expires_at=trial_expires_at,
            credit_currency=credit_currency,
        )

    @staticmethod
    async def expire_memberships(
        session: AsyncSession,
        *,
        now_utc: datetime,
        batch_size: int,
    ) -> dict[str, int]:
        expired_trials = await UsersRepo.list_expired_trials_for_update(
            session,
            now_utc=now_utc,
            limit=batch_size,
        )
        for user in expired_trials:
            user.membership_status = "expired"
            user.membership_tier = None
            user.updated_at = now_utc
            await NotificationsRepo.create(
                session,
                user_id=user.id,
                title="Trial Ended",
                message="Your VIP Trial has ended. Subscribe to keep your benefits.",
                notification_type="trial_ended",
                created_at=now_utc,
            )

        lapsed = await UsersRepo.list_lapsed_cancellations_for_update(
            session,
            now_utc=now_utc,
            limit=batch_size,
        )
        for user in lapsed:
            user.membership_status = "expired"
            user.updated_at = now_utc

        await session.flush()
        return {
            "trials_expired": len(expired_trials),
            "cancellations_lapsed": len(lapsed),
        }
