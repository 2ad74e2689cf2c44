from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.notifications import Notification


class NotificationsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        user_id: str,
        title: str,
        message: str,
        notification_type: str,
        created_at: datetime,
        link: str | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            link=link,
            is_read=False,
            created_at=created_at,
        )
        session.add(notification)
        await session.flush()
        return notification

    @staticmethod
    async def create_many(
        session: AsyncSession,
        *,
        user_ids: list[str],
        title: str,
        message: str,
        notification_type: str,
        created_at: datetime,
        link: str | None = None,
    ) -> int:
        session.add_all(
            [
                Notification(
                    user_id=user_id,
                    title=title,
                    message=message,
                    notification_type=notification_type,
                    link=link,
                    is_read=False,
                    created_at=created_at,
                )
                for user_id in user_ids
            ]
        )
        await session.flush()
        return len(user_ids)

    @staticmethod
    async def list_for_user(session: AsyncSession, *, user_id: str) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.asc(), Notification.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete_for_user(session: AsyncSession, *, user_id: str) -> int:
        stmt = delete(Notification).where(Notification.user_id == user_id)
        result = await session.execute(stmt)
        return result.rowcount or 0
