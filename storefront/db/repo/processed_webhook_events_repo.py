from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.dialect import insert_for
from storefront.db.models.processed_webhook_events import ProcessedWebhookEvent


class ProcessedWebhookEventsRepo:
    @staticmethod
    async def get(
        session: AsyncSession,
        *,
        provider: str,
        dedup_key: str,
    ) -> ProcessedWebhookEvent | None:
        return await session.get(ProcessedWebhookEvent, (provider, dedup_key))

    @staticmethod
    async def try_claim(
        session: AsyncSession,
        *,
        provider: str,
        dedup_key: str,
        event_type: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            insert_for(session, ProcessedWebhookEvent)
            .values(
                provider=provider,
                dedup_key=dedup_key,
                event_type=event_type,
                status="DONE",
                attempts=1,
                first_seen_at=now_utc,
                processed_at=now_utc,
            )
            .on_conflict_do_nothing(
                index_elements=[ProcessedWebhookEvent.provider, ProcessedWebhookEvent.dedup_key]
            )
            .returning(ProcessedWebhookEvent.dedup_key)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def try_reclaim_failed(
        session: AsyncSession,
        *,
        provider: str,
        dedup_key: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(ProcessedWebhookEvent)
            .where(
                ProcessedWebhookEvent.provider == provider,
                ProcessedWebhookEvent.dedup_key == dedup_key,
                ProcessedWebhookEvent.status == "FAILED",
            )
            .values(
                status="DONE",
                attempts=ProcessedWebhookEvent.attempts + 1,
                last_error=None,
                processed_at=now_utc,
            )
            .returning(ProcessedWebhookEvent.dedup_key)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def set_outcome(
        session: AsyncSession,
        *,
        provider: str,
        dedup_key: str,
        outcome: str,
    ) -> None:
        stmt = (
            update(ProcessedWebhookEvent)
            .where(
                ProcessedWebhookEvent.provider == provider,
                ProcessedWebhookEvent.dedup_key == dedup_key,
            )
            .values(outcome=outcome)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    @staticmethod
    async def record_failure(
        session: AsyncSession,
        *,
        provider: str,
        dedup_key: str,
        event_type: str,
        payload: dict[str, object],
        error: str,
        now_utc: datetime,
    ) -> bool:
        insert_stmt = insert_for(session, ProcessedWebhookEvent).values(
            provider=provider,
            dedup_key=dedup_key,
            event_type=event_type,
            status="FAILED",
            attempts=1,
            payload=payload,
            last_error=error,
            first_seen_at=now_utc,
            processed_at=None,
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=[ProcessedWebhookEvent.provider, ProcessedWebhookEvent.dedup_key],
            set_={
                "status": "FAILED",
                "attempts": ProcessedWebhookEvent.attempts + 1,
                "payload": insert_stmt.excluded.payload,
                "last_error": insert_stmt.excluded.last_error,
            },
            where=ProcessedWebhookEvent.status == "FAILED",
        ).returning(ProcessedWebhookEvent.dedup_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_failed(
        session: AsyncSession,
        *,
        limit: int,
    ) -> list[ProcessedWebhookEvent]:
        stmt = (
            select(ProcessedWebhookEvent)
            .where(ProcessedWebhookEvent.status == "FAILED")
            .order_by(ProcessedWebhookEvent.first_seen_at.asc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def mark_review(
        session: AsyncSession,
        *,
        provider: str,
        dedup_key: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(ProcessedWebhookEvent)
            .where(
                ProcessedWebhookEvent.provider == provider,
                ProcessedWebhookEvent.dedup_key == dedup_key,
                ProcessedWebhookEvent.status == "FAILED",
            )
            .values(status="REVIEW", processed_at=now_utc)
            .returning(ProcessedWebhookEvent.dedup_key)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
