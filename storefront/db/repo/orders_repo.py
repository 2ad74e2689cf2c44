from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.orders import Order


class OrdersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, order_id: str) -> Order | None:
        return await session.get(Order, order_id)

    @staticmethod
    async def mark_processing_if_pending(
        session: AsyncSession,
        *,
        order_id: str,
        provider_payment_id: str | None,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == "pending")
            .values(
                status="processing",
                completed_at=now_utc,
                provider_payment_id=provider_payment_id,
            )
            .returning(Order.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def mark_cancelled_if_pending(
        session: AsyncSession,
        *,
        order_id: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == "pending")
            .values(status="cancelled", cancelled_at=now_utc)
            .returning(Order.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def detach_user(session: AsyncSession, *, user_id: str) -> int:
        stmt = (
            update(Order)
            .where(Order.user_id == user_id)
            .values(user_id=None)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0
