from __future__ import annotations

from datetime import datetime

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.repo.outbox_events_repo import OutboxEventsRepo
from storefront.economy.broadcasts.service import PUSH_BROADCAST_EVENT

logger = structlog.get_logger(__name__)

MAX_DELIVERY_ATTEMPTS = 3


async def deliver_push_broadcasts(
    session: AsyncSession,
    *,
    client: httpx.AsyncClient,
    gateway_url: str,
    now_utc: datetime,
    batch_size: int,
) -> dict[str, int]:
    events = await OutboxEventsRepo.list_pending_for_update(
        session,
        event_type=PUSH_BROADCAST_EVENT,
        limit=batch_size,
    )
    sent = 0
    failed = 0
    skipped = 0
    retried = 0
    for event in events:
        if not gateway_url:
            event.status = "SKIPPED"
            skipped += 1
            continue

        event.attempts += 1
        try:
            response = await client.post(gateway_url, json=event.payload)
            response.raise_for_status()
        except httpx.HTTPError:
            logger.exception(
                "push_broadcast_delivery_failed",
                outbox_event_id=event.id,
                attempts=event.attempts,
            )
            if event.attempts >= MAX_DELIVERY_ATTEMPTS:
                event.status = "FAILED"
                failed += 1
            else:
                retried += 1
            continue

        event.status = "SENT"
        event.sent_at = now_utc
        sent += 1

    await session.flush()
    return {
        "events_total": len(events),
        "sent_total": sent,
        "failed_total": failed,
        "retry_total": retried,
        "skipped_total": skipped,
    }
