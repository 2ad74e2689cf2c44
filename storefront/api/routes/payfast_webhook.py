from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse

from storefront.core.config import get_settings
from storefront.db.session import SessionLocal
from storefront.economy.commissions.fx import build_exchange_rates
from storefront.services.ip_allowlist import extract_client_ip, is_client_ip_allowed
from storefront.services.payfast_itn import (
    PROVIDER,
    PayfastItnValidationError,
    build_payfast_handler,
    parse_form_body,
    parse_payfast_itn,
)
from storefront.services.webhook_processing import process_webhook_event

router = APIRouter(tags=["webhooks"])
logger = structlog.get_logger(__name__)


@router.post("/webhooks/payfast")
async def payfast_itn(request: Request) -> PlainTextResponse:
    settings = get_settings()
    client_ip = extract_client_ip(request, trusted_proxies=settings.payfast_trusted_proxies)
    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.payfast_allowed_ips):
        logger.warning("payfast_itn_ip_rejected", client_ip=client_ip)
        return PlainTextResponse("IP not allowed", status_code=status.HTTP_403_FORBIDDEN)

    try:
        fields = parse_form_body(await request.body())
        notification = parse_payfast_itn(fields)
    except PayfastItnValidationError as exc:
        logger.warning("payfast_itn_validation_failed", reason=exc.message)
        return PlainTextResponse(exc.message, status_code=status.HTTP_400_BAD_REQUEST)

    now_utc = datetime.now(timezone.utc)
    result = await process_webhook_event(
        SessionLocal,
        provider=PROVIDER,
        dedup_key=notification.dedup_key,
        event_type=notification.event_type,
        payload=dict(fields),
        handler=build_payfast_handler(
            notification,
            now_utc=now_utc,
            fx_rates=build_exchange_rates(settings),
        ),
        now_utc=now_utc,
    )
    if not result.is_persisted:
        return PlainTextResponse("Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse("OK", status_code=status.HTTP_200_OK)
