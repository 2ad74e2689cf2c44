from __future__ import annotations

import json
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from storefront.core.config import get_settings
from storefront.db.session import SessionLocal
from storefront.economy.commissions.fx import build_exchange_rates
from storefront.services.paypal_events import PaypalEventValidationError, parse_paypal_event
from storefront.services.paypal_webhooks import PROVIDER, build_paypal_handler
from storefront.services.webhook_processing import process_webhook_event
from storefront.services.webhook_signature import verify_paypal_signature

router = APIRouter(tags=["webhooks"])
logger = structlog.get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/webhooks/paypal")
async def paypal_webhook(request: Request) -> JSONResponse:
    settings = get_settings()
    raw_body = await request.body()
    if not verify_paypal_signature(
        headers=request.headers,
        raw_body=raw_body,
        expected_webhook_id=settings.paypal_webhook_id,
        secret=settings.paypal_webhook_secret,
    ):
        logger.warning("paypal_webhook_signature_rejected")
        return _error(status.HTTP_401_UNAUTHORIZED, "Invalid signature")

    try:
        body = json.loads(raw_body)
    except ValueError:
        logger.warning("paypal_webhook_invalid_json")
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid payload")

    try:
        event = parse_paypal_event(body)
    except PaypalEventValidationError as exc:
        logger.warning("paypal_webhook_validation_failed", reason=exc.message)
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    if not event.is_handled:
        logger.info("paypal_webhook_event_ignored", event_type=event.event_type)
        return JSONResponse(status_code=status.HTTP_200_OK, content={"received": True})

    now_utc = datetime.now(timezone.utc)
    result = await process_webhook_event(
        SessionLocal,
        provider=PROVIDER,
        dedup_key=event.dedup_key,
        event_type=event.event_type,
        payload=body,
        handler=build_paypal_handler(
            event,
            now_utc=now_utc,
            fx_rates=build_exchange_rates(settings),
            extension_days=settings.membership_extension_days,
        ),
        now_utc=now_utc,
    )
    if not result.is_persisted:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Webhook processing failed")
    return JSONResponse(status_code=status.HTTP_200_OK, content={"received": True})
