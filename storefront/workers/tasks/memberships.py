from __future__ import annotations

from datetime import datetime, timezone

import structlog
from celery.schedules import crontab

from storefront.core.config import get_settings
from storefront.db.session import SessionLocal
from storefront.economy.memberships.credits import StoreCreditService
from storefront.economy.memberships.service import MembershipService
from storefront.workers.asyncio_runner import run_async_job
from storefront.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_membership_expiry_async(*, batch_size: int = 500) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await MembershipService.expire_memberships(
            session,
            now_utc=now_utc,
            batch_size=batch_size,
        )
    logger.info("membership_expiry_finished", **result)
    return result


async def run_monthly_credit_drop_async(*, batch_size: int = 500) -> dict[str, int]:
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await StoreCreditService.run_monthly_credit_drop(
            session,
            now_utc=now_utc,
            tz_name=settings.scheduler_timezone,
            interval_days=max(1, int(settings.credit_drop_interval_days)),
            batch_size=batch_size,
        )
    logger.info("monthly_credit_drop_finished", **result)
    return result


@celery_app.task(name="storefront.workers.tasks.memberships.run_membership_expiry")
def run_membership_expiry(batch_size: int = 500) -> dict[str, int]:
    return run_async_job(run_membership_expiry_async(batch_size=batch_size))


@celery_app.task(name="storefront.workers.tasks.memberships.run_monthly_credit_drop")
def run_monthly_credit_drop(batch_size: int = 500) -> dict[str, int]:
    return run_async_job(run_monthly_credit_drop_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "membership-expiry-daily": {
            "task": "storefront.workers.tasks.memberships.run_membership_expiry",
            "schedule": crontab(hour=10, minute=0),
            "options": {"queue": "q_low"},
        },
        "monthly-credit-drop-daily": {
            "task": "storefront.workers.tasks.memberships.run_monthly_credit_drop",
            "schedule": crontab(hour=9, minute=0),
            "options": {"queue": "q_low"},
        },
    }
)
