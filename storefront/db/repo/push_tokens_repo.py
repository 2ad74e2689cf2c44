from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.push_tokens import PushToken


class PushTokensRepo:
    @staticmethod
    async def list_tokens_for_users(
        session: AsyncSession,
        user_ids: Sequence[str],
    ) -> list[tuple[str, str]]:
        ids = tuple(set(user_ids))
        if not ids:
            return []
        stmt = (
            select(PushToken.user_id, PushToken.token)
            .where(PushToken.user_id.in_(ids))
            .order_by(PushToken.user_id.asc(), PushToken.id.asc())
        )
        result = await session.execute(stmt)
        return [(str(user_id), str(token)) for user_id, token in result.all()]

    @staticmethod
    async def delete_for_user(session: AsyncSession, *, user_id: str) -> int:
        stmt = delete(PushToken).where(PushToken.user_id == user_id)
        result = await session.execute(stmt)
        return result.rowcount or 0
