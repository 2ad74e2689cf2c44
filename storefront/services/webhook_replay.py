from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.db.repo.processed_webhook_events_repo import ProcessedWebhookEventsRepo
from storefront.economy.commissions.fx import ExchangeRates
from storefront.services import payfast_itn, paypal_webhooks
from storefront.services.alerts import send_ops_alert
from storefront.services.payfast_itn import PayfastItnValidationError, parse_payfast_itn
from storefront.services.paypal_events import PaypalEventValidationError, parse_paypal_event
from storefront.services.webhook_processing import EventHandler, process_webhook_event

logger = structlog.get_logger(__name__)


def _rebuild_handler(
    *,
    provider: str,
    payload: dict[str, object],
    now_utc: datetime,
    fx_rates: ExchangeRates,
    extension_days: int,
) -> EventHandler:
    if provider == paypal_webhooks.PROVIDER:
        return paypal_webhooks.build_paypal_handler(
            parse_paypal_event(payload),
            now_utc=now_utc,
            fx_rates=fx_rates,
            extension_days=extension_days,
        )
    if provider == payfast_itn.PROVIDER:
        return payfast_itn.build_payfast_handler(
            parse_payfast_itn(payload),
            now_utc=now_utc,
            fx_rates=fx_rates,
        )
    raise ValueError(f"Unsupported webhook provider: {provider}")


async def _move_to_review(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    provider: str,
    dedup_key: str,
    event_type: str,
    attempts: int,
    reason: str,
    now_utc: datetime,
) -> None:
    async with session_factory.begin() as session:
        moved = await ProcessedWebhookEventsRepo.mark_review(
            session,
            provider=provider,
            dedup_key=dedup_key,
            now_utc=now_utc,
        )
    if moved:
        await send_ops_alert(
            event="webhook_replay_review_required",
            payload={
                "provider": provider,
                "dedup_key": dedup_key,
                "event_type": event_type,
                "attempts": attempts,
                "reason": reason,
            },
        )


async def replay_failed_webhook_events(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    now_utc: datetime,
    fx_rates: ExchangeRates,
    extension_days: int,
    max_attempts: int,
    batch_size: int,
) -> dict[str, int]:
    async with session_factory() as session:
        failed_rows = await ProcessedWebhookEventsRepo.list_failed(session, limit=batch_size)
        candidates = [
            (row.provider, row.dedup_key, row.event_type, row.attempts, dict(row.payload or {}))
            for row in failed_rows
        ]

    applied = 0
    still_failing = 0
    moved_to_review = 0
    skipped = 0
    for provider, dedup_key, event_type, attempts, payload in candidates:
        if attempts >= max_attempts:
            await _move_to_review(
                session_factory,
                provider=provider,
                dedup_key=dedup_key,
                event_type=event_type,
                attempts=attempts,
                reason="max_attempts_exhausted",
                now_utc=now_utc,
            )
            moved_to_review += 1
            continue

        try:
            handler = _rebuild_handler(
                provider=provider,
                payload=payload,
                now_utc=now_utc,
                fx_rates=fx_rates,
                extension_days=extension_days,
            )
        except (PaypalEventValidationError, PayfastItnValidationError, ValueError):
            await _move_to_review(
                session_factory,
                provider=provider,
                dedup_key=dedup_key,
                event_type=event_type,
                attempts=attempts,
                reason="stored_payload_invalid",
                now_utc=now_utc,
            )
            moved_to_review += 1
            continue

        result = await process_webhook_event(
            session_factory,
            provider=provider,
            dedup_key=dedup_key,
            event_type=event_type,
            payload=payload,
            handler=handler,
            now_utc=now_utc,
        )
        if result.status == "applied":
            applied += 1
        elif result.status == "duplicate":
            skipped += 1
        else:
            still_failing += 1

    summary = {
        "candidates_total": len(candidates),
        "applied_total": applied,
        "still_failing_total": still_failing,
        "review_total": moved_to_review,
        "skipped_total": skipped,
    }
    if still_failing:
        await send_ops_alert(event="webhook_replay_failed", payload=dict(summary))
    return summary
