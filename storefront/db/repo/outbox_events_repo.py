from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.outbox_events import OutboxEvent


class OutboxEventsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        event_type: str,
        payload: dict[str, object],
        status: str,
        created_at: datetime,
    ) -> OutboxEvent:
        event = OutboxEvent(
            event_type=event_type,
            payload=payload,
            status=status,
            attempts=0,
            created_at=created_at,
        )
        session.add(event)
        await session.flush()
        return event

    @staticmethod
    async def list_pending_for_update(
        session: AsyncSession,
        *,
        event_type: str,
        limit: int,
    ) -> list[OutboxEvent]:
        stmt = (
            select(OutboxEvent)
            .where(OutboxEvent.event_type == event_type, OutboxEvent.status == "PENDING")
            .order_by(OutboxEvent.created_at.asc(), OutboxEvent.id.asc())
            .limit(max(1, int(limit)))
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
