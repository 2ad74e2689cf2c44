from __future__ import annotations

from datetime import datetime, timezone

import structlog

from storefront.core.config import get_settings
from storefront.db.session import SessionLocal
from storefront.economy.commissions.fx import build_exchange_rates
from storefront.services.webhook_replay import replay_failed_webhook_events
from storefront.workers.asyncio_runner import run_async_job
from storefront.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_webhook_replay_async() -> dict[str, int]:
    settings = get_settings()
    result = await replay_failed_webhook_events(
        SessionLocal,
        now_utc=datetime.now(timezone.utc),
        fx_rates=build_exchange_rates(settings),
        extension_days=settings.membership_extension_days,
        max_attempts=max(1, int(settings.webhook_replay_max_attempts)),
        batch_size=max(1, int(settings.webhook_replay_batch_size)),
    )
    logger.info("webhook_replay_finished", **result)
    return result


@celery_app.task(name="storefront.workers.tasks.webhook_recovery.run_webhook_replay")
def run_webhook_replay() -> dict[str, int]:
    return run_async_job(run_webhook_replay_async())


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "webhook-replay-every-5-minutes": {
            "task": "storefront.workers.tasks.webhook_recovery.run_webhook_replay",
            "schedule": 300.0,
            "options": {"queue": "q_normal"},
        },
    }
)
