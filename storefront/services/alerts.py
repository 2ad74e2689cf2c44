from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import structlog

from storefront.core.config import get_settings

logger = structlog.get_logger(__name__)

EVENT_SEVERITY = {
    "webhook_replay_review_required": "error",
    "webhook_replay_failed": "warning",
}


def _setting_str(settings: object, attr: str) -> str:
    value = getattr(settings, attr, "")
    return value.strip() if isinstance(value, str) else ""


def _payload_text(payload: dict[str, object]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


async def send_ops_alert(*, event: str, payload: dict[str, object]) -> bool:
    settings = get_settings()
    webhook_url = _setting_str(settings, "ops_alert_webhook_url")
    if not webhook_url:
        return False

    sent_at = datetime.now(timezone.utc)
    body = {
        "event": event,
        "severity": EVENT_SEVERITY.get(event, "warning"),
        "environment": _setting_str(settings, "app_env") or "dev",
        "sent_at": sent_at.isoformat(),
        "payload": payload,
        "text": f"[{_setting_str(settings, 'app_env') or 'dev'}] {event} {_payload_text(payload)}",
    }
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.post(webhook_url, json=body)
            response.raise_for_status()
    except Exception:
        logger.exception("ops_alert_delivery_failed", alert_event=event)
        return False

    logger.info("ops_alert_sent", alert_event=event)
    return True
