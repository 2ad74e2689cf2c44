from __future__ import annotations

from datetime import datetime, timezone

import structlog

from storefront.db.repo.products_repo import ProductsRepo
from storefront.db.session import SessionLocal
from storefront.workers.asyncio_runner import run_async_job
from storefront.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_ad_expiry_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        demoted_ids = await ProductsRepo.demote_expired_promotions(session, now_utc=now_utc)

    result = {"demoted_total": len(demoted_ids)}
    logger.info("ad_expiry_finished", **result)
    return result


@celery_app.task(name="storefront.workers.tasks.promotions.run_ad_expiry")
def run_ad_expiry() -> dict[str, int]:
    return run_async_job(run_ad_expiry_async())


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "ad-expiry-hourly": {
            "task": "storefront.workers.tasks.promotions.run_ad_expiry",
            "schedule": 3600.0,
            "options": {"queue": "q_low"},
        },
    }
)
