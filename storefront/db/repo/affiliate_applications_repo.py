from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.affiliate_applications import AffiliateApplication


class AffiliateApplicationsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        application: AffiliateApplication,
    ) -> AffiliateApplication:
        session.add(application)
        await session.flush()
        return application

    @staticmethod
    async def get_by_id(session: AsyncSession, application_id: UUID) -> AffiliateApplication | None:
        return await session.get(AffiliateApplication, application_id)

    @staticmethod
    async def get_open_for_user(session: AsyncSession, *, user_id: str) -> AffiliateApplication | None:
        stmt = (
            select(AffiliateApplication)
            .where(
                AffiliateApplication.user_id == user_id,
                AffiliateApplication.status.in_(("pending", "approved")),
            )
            .order_by(AffiliateApplication.applied_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_due_for_auto_approve(
        session: AsyncSession,
        *,
        now_utc: datetime,
        limit: int,
    ) -> list[AffiliateApplication]:
        stmt = (
            select(AffiliateApplication)
            .where(
                AffiliateApplication.status == "pending",
                AffiliateApplication.auto_approve_at <= now_utc,
            )
            .order_by(AffiliateApplication.auto_approve_at.asc(), AffiliateApplication.id.asc())
            .limit(max(1, int(limit)))
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def decide_if_pending(
        session: AsyncSession,
        *,
        application_id: UUID,
        status: str,
        decided_at: datetime,
        approved_by: str | None = None,
        rejection_reason: str | None = None,
        affiliate_code: str | None = None,
    ) -> str | None:
        stmt = (
            update(AffiliateApplication)
            .where(
                AffiliateApplication.id == application_id,
                AffiliateApplication.status == "pending",
            )
            .values(
                status=status,
                decided_at=decided_at,
                approved_by=approved_by,
                rejection_reason=rejection_reason,
                affiliate_code=affiliate_code,
            )
            .returning(AffiliateApplication.user_id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_for_user(session: AsyncSession, *, user_id: str) -> int:
        stmt = delete(AffiliateApplication).where(AffiliateApplication.user_id == user_id)
        result = await session.execute(stmt)
        return result.rowcount or 0
