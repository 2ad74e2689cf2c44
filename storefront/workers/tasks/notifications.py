from __future__ import annotations

from datetime import datetime, timezone

import httpx
import structlog

from storefront.core.config import get_settings
from storefront.db.session import SessionLocal
from storefront.services.push_delivery import deliver_push_broadcasts
from storefront.workers.asyncio_runner import run_async_job
from storefront.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_push_delivery_async(*, batch_size: int = 20) -> dict[str, int]:
    settings = get_settings()
    async with httpx.AsyncClient(timeout=10.0) as client:
        async with SessionLocal.begin() as session:
            result = await deliver_push_broadcasts(
                session,
                client=client,
                gateway_url=settings.push_gateway_url.strip(),
                now_utc=datetime.now(timezone.utc),
                batch_size=batch_size,
            )
    logger.info("push_delivery_finished", **result)
    return result


@celery_app.task(name="storefront.workers.tasks.notifications.run_push_delivery")
def run_push_delivery(batch_size: int = 20) -> dict[str, int]:
    return run_async_job(run_push_delivery_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "push-delivery-every-minute": {
            "task": "storefront.workers.tasks.notifications.run_push_delivery",
            "schedule": 60.0,
            "options": {"queue": "q_normal"},
        },
    }
)
