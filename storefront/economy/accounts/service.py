from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.affiliate_applications import AffiliateApplication
from storefront.db.repo.affiliate_applications_repo import AffiliateApplicationsRepo
from storefront.db.repo.notifications_repo import NotificationsRepo
from storefront.db.repo.orders_repo import OrdersRepo
from storefront.db.repo.push_tokens_repo import PushTokensRepo
from storefront.db.repo.users_repo import UsersRepo
from storefront.economy.accounts.errors import AccountNotFoundError, SelfDeletionError
from storefront.economy.accounts.types import AccountDeletionResult

logger = structlog.get_logger(__name__)

DELETED_ACCOUNT_REASON = "Account deleted"


class AccountService:
    @staticmethod
    async def delete_user(
        session: AsyncSession,
        *,
        user_id: str,
        actor_id: str,
        soft: bool,
        now_utc: datetime,
    ) -> AccountDeletionResult:
        """Removes an account and the rows that only make sense with it.

        Commissions, ledger entries and payouts reference users by plain id and
        are kept; they are the financial audit trail.
        """
        if user_id == actor_id:
            raise SelfDeletionError

        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise AccountNotFoundError

        if soft:
            if user.status == "deleted":
                return AccountDeletionResult(user_id=user_id, mode="soft", idempotent_replay=True)

            pending_stmt = select(AffiliateApplication.id).where(
                AffiliateApplication.user_id == user_id,
                AffiliateApplication.status == "pending",
            )
            pending_ids = list((await session.execute(pending_stmt)).scalars().all())
            for application_id in pending_ids:
                await AffiliateApplicationsRepo.decide_if_pending(
                    session,
                    application_id=application_id,
                    status="rejected",
                    decided_at=now_utc,
                    approved_by=actor_id,
                    rejection_reason=DELETED_ACCOUNT_REASON,
                )
            removed = {
                "push_tokens": await PushTokensRepo.delete_for_user(session, user_id=user_id),
                "pending_applications_closed": len(pending_ids),
            }
            user.status = "deleted"
            user.deleted_at = now_utc
            user.affiliate_status = "inactive" if user.is_affiliate else user.affiliate_status
            user.updated_at = now_utc
            await session.flush()
            logger.info("user_soft_deleted", user_id=user_id, actor_id=actor_id, **removed)
            return AccountDeletionResult(
                user_id=user_id,
                mode="soft",
                idempotent_replay=False,
                removed=removed,
            )

        removed = {
            "notifications": await NotificationsRepo.delete_for_user(session, user_id=user_id),
            "push_tokens": await PushTokensRepo.delete_for_user(session, user_id=user_id),
            "affiliate_applications": await AffiliateApplicationsRepo.delete_for_user(
                session,
                user_id=user_id,
            ),
            "referrals_detached": await UsersRepo.clear_referrer(session, referrer_id=user_id),
            "orders_detached": await OrdersRepo.detach_user(session, user_id=user_id),
        }
        await session.delete(user)
        await session.flush()
        logger.info("user_hard_deleted", user_id=user_id, actor_id=actor_id, **removed)
        return AccountDeletionResult(
            user_id=user_id,
            mode="hard",
            idempotent_replay=False,
            removed=removed,
        )
