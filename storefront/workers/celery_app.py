from celery import Celery

from storefront.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "storefront_ledger",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "storefront.workers.tasks.affiliates",
        "storefront.workers.tasks.memberships",
        "storefront.workers.tasks.promotions",
        "storefront.workers.tasks.webhook_recovery",
        "storefront.workers.tasks.notifications",
    ],
)

celery_app.conf.update(
    task_default_queue="q_normal",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.scheduler_timezone,
    enable_utc=True,
)
