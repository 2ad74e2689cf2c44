from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.dialect import insert_for
from storefront.db.models.commissions import Commission


class CommissionsRepo:
    @staticmethod
    async def create_if_absent(
        session: AsyncSession,
        *,
        affiliate_id: str,
        referred_user_id: str,
        amount: Decimal,
        currency: str,
        credited_amount: Decimal,
        credited_currency: str,
        commission_type: str,
        plan_type: str | None,
        commission_percent: Decimal | None,
        order_id: str,
        idempotency_key: str,
        created_at: datetime,
    ) -> UUID | None:
        stmt = (
            insert_for(session, Commission)
            .values(
                id=uuid4(),
                affiliate_id=affiliate_id,
                referred_user_id=referred_user_id,
                amount=amount,
                currency=currency,
                credited_amount=credited_amount,
                credited_currency=credited_currency,
                commission_type=commission_type,
                plan_type=plan_type,
                commission_percent=commission_percent,
                order_id=order_id,
                status="completed",
                idempotency_key=idempotency_key,
                created_at=created_at,
            )
            .on_conflict_do_nothing(index_elements=[Commission.idempotency_key])
            .returning(Commission.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession,
        idempotency_key: str,
    ) -> Commission | None:
        stmt = select(Commission).where(Commission.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
