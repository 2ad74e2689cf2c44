from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.db.repo.processed_webhook_events_repo import ProcessedWebhookEventsRepo
from storefront.economy.affiliates.errors import ApplicantNotFoundError
from storefront.economy.commissions.errors import CommissionUserNotFoundError
from storefront.economy.memberships.errors import MembershipUserNotFoundError
from storefront.economy.orders.errors import OrderNotFoundError

logger = structlog.get_logger(__name__)

EventHandler = Callable[[AsyncSession], Awaitable[str]]

# Re-delivery cannot make a missing record appear, so these settle the event.
NOT_FOUND_ERRORS: tuple[type[Exception], ...] = (
    MembershipUserNotFoundError,
    CommissionUserNotFoundError,
    OrderNotFoundError,
    ApplicantNotFoundError,
)
MAX_ERROR_LENGTH = 500


@dataclass(frozen=True, slots=True)
class WebhookProcessingResult:
    status: str
    outcome: str | None = None

    @property
    def is_persisted(self) -> bool:
        return self.status != "unrecorded"


async def _claim(
    session: AsyncSession,
    *,
    provider: str,
    dedup_key: str,
    event_type: str,
    now_utc: datetime,
) -> bool:
    if await ProcessedWebhookEventsRepo.try_claim(
        session,
        provider=provider,
        dedup_key=dedup_key,
        event_type=event_type,
        now_utc=now_utc,
    ):
        return True
    return await ProcessedWebhookEventsRepo.try_reclaim_failed(
        session,
        provider=provider,
        dedup_key=dedup_key,
        now_utc=now_utc,
    )


async def _record_failure(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    provider: str,
    dedup_key: str,
    event_type: str,
    payload: dict[str, object],
    error: str,
    now_utc: datetime,
) -> bool:
    try:
        async with session_factory.begin() as session:
            await ProcessedWebhookEventsRepo.record_failure(
                session,
                provider=provider,
                dedup_key=dedup_key,
                event_type=event_type,
                payload=payload,
                error=error[:MAX_ERROR_LENGTH],
                now_utc=now_utc,
            )
        return True
    except Exception:
        logger.exception(
            "webhook_failure_record_failed",
            provider=provider,
            dedup_key=dedup_key,
            event_type=event_type,
        )
        return False


async def process_webhook_event(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    provider: str,
    dedup_key: str,
    event_type: str,
    payload: dict[str, object],
    handler: EventHandler,
    now_utc: datetime,
) -> WebhookProcessingResult:
    """Applies one provider event exactly once.

    The dedup claim and every side effect share one transaction. A duplicate
    finds the committed claim and does nothing; a handler failure rolls the
    claim back with everything else and leaves a FAILED row that carries the
    payload for the replay job.
    """
    log = logger.bind(provider=provider, dedup_key=dedup_key, event_type=event_type)
    try:
        async with session_factory.begin() as session:
            if not await _claim(
                session,
                provider=provider,
                dedup_key=dedup_key,
                event_type=event_type,
                now_utc=now_utc,
            ):
                log.info("webhook_event_duplicate_skipped")
                return WebhookProcessingResult(status="duplicate")

            try:
                outcome = await handler(session)
            except NOT_FOUND_ERRORS as exc:
                outcome = "ignored_not_found"
                log.warning("webhook_event_target_missing", error_type=type(exc).__name__)

            await ProcessedWebhookEventsRepo.set_outcome(
                session,
                provider=provider,
                dedup_key=dedup_key,
                outcome=outcome,
            )
        log.info("webhook_event_applied", outcome=outcome)
        return WebhookProcessingResult(status="applied", outcome=outcome)
    except Exception as exc:
        log.exception("webhook_event_handler_failed")
        recorded = await _record_failure(
            session_factory,
            provider=provider,
            dedup_key=dedup_key,
            event_type=event_type,
            payload=payload,
            error=f"{type(exc).__name__}: {exc}",
            now_utc=now_utc,
        )
        return WebhookProcessingResult(status="failed" if recorded else "unrecorded")
