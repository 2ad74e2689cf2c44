from __future__ import annotations

from datetime import datetime, timezone

import structlog

from storefront.db.session import SessionLocal
from storefront.economy.affiliates.service import AffiliateApplicationService
from storefront.workers.asyncio_runner import run_async_job
from storefront.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_affiliate_auto_approve_async(*, batch_size: int = 200) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    # One transaction for the whole batch: a failure anywhere leaves every application pending.
    async with SessionLocal.begin() as session:
        result = await AffiliateApplicationService.run_auto_approve_sweep(
            session,
            now_utc=now_utc,
            batch_size=batch_size,
        )
    logger.info("affiliate_auto_approve_finished", **result)
    return result


@celery_app.task(name="storefront.workers.tasks.affiliates.run_affiliate_auto_approve")
def run_affiliate_auto_approve(batch_size: int = 200) -> dict[str, int]:
    return run_async_job(run_affiliate_auto_approve_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "affiliate-auto-approve-every-10-minutes": {
            "task": "storefront.workers.tasks.affiliates.run_affiliate_auto_approve",
            "schedule": 600.0,
            "options": {"queue": "q_normal"},
        },
    }
)
