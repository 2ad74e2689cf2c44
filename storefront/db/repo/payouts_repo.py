from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.payouts import Payout

OPEN_PAYOUT_STATUSES = ("pending", "processing")


class PayoutsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, payout: Payout) -> Payout:
        session.add(payout)
        await session.flush()
        return payout

    @staticmethod
    async def get_by_id(session: AsyncSession, payout_id: UUID) -> Payout | None:
        return await session.get(Payout, payout_id)

    @staticmethod
    async def get_by_provider_item_id(
        session: AsyncSession,
        provider_payout_item_id: str,
    ) -> Payout | None:
        stmt = select(Payout).where(Payout.provider_payout_item_id == provider_payout_item_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_processing(
        session: AsyncSession,
        *,
        payout_id: UUID,
        provider_payout_item_id: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Payout)
            .where(Payout.id == payout_id, Payout.status == "pending")
            .values(
                status="processing",
                provider_payout_item_id=provider_payout_item_id,
                processing_at=now_utc,
            )
            .returning(Payout.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def mark_completed(
        session: AsyncSession,
        *,
        provider_payout_item_id: str,
        now_utc: datetime,
    ) -> UUID | None:
        stmt = (
            update(Payout)
            .where(
                Payout.provider_payout_item_id == provider_payout_item_id,
                Payout.status.in_(OPEN_PAYOUT_STATUSES),
            )
            .values(status="completed", completed_at=now_utc)
            .returning(Payout.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_failed(
        session: AsyncSession,
        *,
        provider_payout_item_id: str,
        now_utc: datetime,
    ) -> tuple[UUID, str, Decimal, str] | None:
        stmt = (
            update(Payout)
            .where(
                Payout.provider_payout_item_id == provider_payout_item_id,
                Payout.status.in_(OPEN_PAYOUT_STATUSES),
            )
            .values(status="failed", failed_at=now_utc)
            .returning(Payout.id, Payout.affiliate_id, Payout.amount, Payout.currency)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row[0], row[1], row[2], row[3]

    @staticmethod
    async def mark_refunded(
        session: AsyncSession,
        *,
        payout_id: UUID,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Payout)
            .where(
                Payout.id == payout_id,
                Payout.status == "failed",
                Payout.refunded_at.is_(None),
            )
            .values(refunded_at=now_utc)
            .returning(Payout.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
