from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.db.models.notifications import Notification
from storefront.db.models.orders import Order
from storefront.db.models.users import User
from storefront.db.repo.notifications_repo import NotificationsRepo
from storefront.db.repo.users_repo import UsersRepo
from storefront.economy.commissions.fx import ExchangeRates

UTC = timezone.utc
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
FX_RATES = ExchangeRates(
    usd_rates={"USD": Decimal("1"), "ZAR": Decimal("18")},
    as_of=date(2026, 3, 1),
    max_age_days=30,
)


async def create_user(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: str,
    *,
    referrer_id: str | None = None,
    **fields: object,
) -> None:
    async with session_factory.begin() as session:
        user = await UsersRepo.create(
            session,
            user_id=user_id,
            email=f"{user_id}@example.com",
            created_at=NOW - timedelta(days=90),
            referrer_id=referrer_id,
        )
        for name, value in fields.items():
            setattr(user, name, value)
        await session.flush()


async def load_user(session_factory: async_sessionmaker[AsyncSession], user_id: str) -> User | None:
    async with session_factory() as session:
        return await session.get(User, user_id)


async def create_order(
    session_factory: async_sessionmaker[AsyncSession],
    order_id: str,
    *,
    user_id: str | None,
    total: Decimal,
    currency: str = "ZAR",
    meta: dict[str, object] | None = None,
) -> None:
    async with session_factory.begin() as session:
        session.add(
            Order(
                id=order_id,
                user_id=user_id,
                total=total,
                currency=currency,
                status="pending",
                meta=meta or {},
                created_at=NOW - timedelta(minutes=5),
            )
        )


async def count_rows(session_factory: async_sessionmaker[AsyncSession], model: type, *criteria: object) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int((await session.execute(stmt)).scalar_one())


async def list_notifications(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: str,
) -> list[Notification]:
    async with session_factory() as session:
        return await NotificationsRepo.list_for_user(session, user_id=user_id)
