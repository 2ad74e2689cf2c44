from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: str) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, user_id: str) -> User | None:
        stmt = select(User).where(User.id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        user_id: str,
        email: str | None,
        created_at: datetime,
        referrer_id: str | None = None,
        is_admin: bool = False,
    ) -> User:
        user = User(
            id=user_id,
            email=email,
            referrer_id=referrer_id,
            is_admin=is_admin,
            status="active",
            membership_status="none",
            created_at=created_at,
            updated_at=created_at,
        )
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def affiliate_code_exists(session: AsyncSession, code: str) -> bool:
        stmt = select(User.id).where(User.affiliate_code == code).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def credit_affiliate_balance(
        session: AsyncSession,
        *,
        user_id: str,
        amount: Decimal,
        now_utc: datetime,
        stamp_commission: bool = False,
    ) -> Decimal | None:
        values: dict[str, object] = {
            "affiliate_balance": User.affiliate_balance + amount,
            "updated_at": now_utc,
        }
        if stamp_commission:
            values["last_commission_at"] = now_utc
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .returning(User.affiliate_balance)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def debit_affiliate_balance(
        session: AsyncSession,
        *,
        user_id: str,
        amount: Decimal,
        now_utc: datetime,
    ) -> Decimal | None:
        stmt = (
            update(User)
            .where(User.id == user_id, User.affiliate_balance >= amount)
            .values(affiliate_balance=User.affiliate_balance - amount, updated_at=now_utc)
            .returning(User.affiliate_balance)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def adjust_store_credit(
        session: AsyncSession,
        *,
        user_id: str,
        delta: Decimal,
        now_utc: datetime,
    ) -> Decimal | None:
        stmt = (
            update(User)
            .where(User.id == user_id, User.store_credit + delta >= 0)
            .values(store_credit=User.store_credit + delta, updated_at=now_utc)
            .returning(User.store_credit)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def apply_credit_drop(
        session: AsyncSession,
        *,
        user_id: str,
        expected_drop_at: datetime,
        next_drop_at: datetime,
        amount: Decimal,
        now_utc: datetime,
    ) -> Decimal | None:
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                User.membership_status == "active",
                User.next_credit_drop_at == expected_drop_at,
            )
            .values(
                store_credit=User.store_credit + amount,
                next_credit_drop_at=next_drop_at,
                updated_at=now_utc,
            )
            .returning(User.store_credit)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_expired_trials_for_update(
        session: AsyncSession,
        *,
        now_utc: datetime,
        limit: int,
    ) -> list[User]:
        stmt = (
            select(User)
            .where(
                User.membership_status == "trial",
                User.trial_expires_at.is_not(None),
                User.trial_expires_at < now_utc,
            )
            .order_by(User.trial_expires_at.asc(), User.id.asc())
            .limit(max(1, int(limit)))
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_lapsed_cancellations_for_update(
        session: AsyncSession,
        *,
        now_utc: datetime,
        limit: int,
    ) -> list[User]:
        stmt = (
            select(User)
            .where(
                User.membership_status == "cancelled_pending",
                User.membership_expiry.is_not(None),
                User.membership_expiry < now_utc,
            )
            .order_by(User.membership_expiry.asc(), User.id.asc())
            .limit(max(1, int(limit)))
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_credit_drop_due(
        session: AsyncSession,
        *,
        due_before_utc: datetime,
        limit: int,
    ) -> list[User]:
        stmt = (
            select(User)
            .where(
                User.status == "active",
                User.membership_status == "active",
                User.next_credit_drop_at.is_not(None),
                User.next_credit_drop_at < due_before_utc,
            )
            .order_by(User.next_credit_drop_at.asc(), User.id.asc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_push_target_ids(
        session: AsyncSession,
        *,
        target_type: str,
        target_value: str | None,
        limit: int,
    ) -> list[str]:
        stmt = select(User.id).where(User.status == "active")
        if target_type == "individual":
            stmt = stmt.where(User.id == target_value)
        elif target_type == "tier":
            stmt = stmt.where(User.membership_tier == target_value)
        stmt = stmt.order_by(User.id.asc()).limit(max(1, int(limit)))
        result = await session.execute(stmt)
        return [str(user_id) for user_id in result.scalars().all()]

    @staticmethod
    async def clear_referrer(session: AsyncSession, *, referrer_id: str) -> int:
        stmt = (
            update(User)
            .where(User.referrer_id == referrer_id)
            .values(referrer_id=None)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount or 0
