from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping

import structlog

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "paypal-transmission-sig"
TIMESTAMP_HEADER = "paypal-transmission-time"
WEBHOOK_ID_HEADER = "paypal-webhook-id"
EVENT_TYPE_HEADER = "paypal-event-type"
REQUIRED_HEADERS = (SIGNATURE_HEADER, TIMESTAMP_HEADER, WEBHOOK_ID_HEADER, EVENT_TYPE_HEADER)


def compute_paypal_signature(*, secret: str, timestamp: str, raw_body: bytes) -> str:
    message = timestamp.encode("utf-8") + b"." + raw_body
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _lowercase_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(name).lower(): value for name, value in headers.items()}


def verify_paypal_signature(
    *,
    headers: Mapping[str, str],
    raw_body: bytes,
    expected_webhook_id: str,
    secret: str,
) -> bool:
    """HMAC-SHA256 over ``timestamp + "." + body``, compared in constant time.

    The body is the exact byte string received; re-serialising parsed JSON
    would change whitespace and key order and break the digest.
    """
    try:
        normalized = _lowercase_headers(headers)
        if any(not normalized.get(name) for name in REQUIRED_HEADERS):
            return False
        if not secret or not expected_webhook_id:
            logger.warning("paypal_webhook_verifier_not_configured")
            return False
        if not hmac.compare_digest(normalized[WEBHOOK_ID_HEADER], expected_webhook_id):
            return False

        expected_signature = compute_paypal_signature(
            secret=secret,
            timestamp=normalized[TIMESTAMP_HEADER],
            raw_body=raw_body,
        )
        return hmac.compare_digest(normalized[SIGNATURE_HEADER], expected_signature)
    except Exception:
        logger.warning("paypal_webhook_signature_check_errored")
        return False
