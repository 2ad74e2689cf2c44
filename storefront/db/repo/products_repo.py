from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.products import Product


class ProductsRepo:
    @staticmethod
    async def demote_expired_promotions(
        session: AsyncSession,
        *,
        now_utc: datetime,
    ) -> list[str]:
        stmt = (
            update(Product)
            .where(
                Product.is_promoted.is_(True),
                Product.promoted_until.is_not(None),
                Product.promoted_until < now_utc,
            )
            .values(is_promoted=False, updated_at=now_utc)
            .returning(Product.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return [str(product_id) for product_id in result.scalars().all()]
