from __future__ import annotations

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from storefront.economy.commissions.rates import parse_amount, resolve_plan_type

SALE_COMPLETED = "PAYMENT.SALE.COMPLETED"
SUBSCRIPTION_PAYMENT_FAILED = "BILLING.SUBSCRIPTION.PAYMENT.FAILED"
SUBSCRIPTION_CANCELLED = "BILLING.SUBSCRIPTION.CANCELLED"
PAYOUT_ITEM_SUCCEEDED = "PAYMENT.PAYOUTS-ITEM.SUCCEEDED"
PAYOUT_ITEM_FAILED = "PAYMENT.PAYOUTS-ITEM.FAILED"
HANDLED_EVENT_TYPES = frozenset(
    {
        SALE_COMPLETED,
        SUBSCRIPTION_PAYMENT_FAILED,
        SUBSCRIPTION_CANCELLED,
        PAYOUT_ITEM_SUCCEEDED,
        PAYOUT_ITEM_FAILED,
    }
)


class PaypalEventValidationError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True, slots=True)
class PaypalEvent:
    event_type: str
    dedup_key: str
    user_id: str | None = None
    subscription_id: str | None = None
    payout_item_id: str | None = None
    order_id: str | None = None
    amount_total: Decimal | None = None
    plan_type: str | None = None
    paid_at: datetime | None = None

    @property
    def is_handled(self) -> bool:
        return self.event_type in HANDLED_EVENT_TYPES


def _text(value: object) -> str | None:
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        normalized = str(value).strip()
        return normalized or None
    return None


def _parse_timestamp(value: object) -> datetime | None:
    raw = _text(value)
    if raw is None:
        return None
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def build_dedup_key(body: Mapping[str, object], resource: Mapping[str, object]) -> str:
    event_id = _text(body.get("id"))
    if event_id is not None:
        return f"ev_{event_id}"

    amount = resource.get("amount")
    amount_total = _text(amount.get("total")) if isinstance(amount, Mapping) else None
    resource_ref = (
        _text(resource.get("id"))
        or _text(resource.get("payout_item_id"))
        or _text(resource.get("custom_id"))
        or _text(resource.get("custom"))
        or ""
    )
    composite = f"{body.get('event_type')}|{resource_ref}|{amount_total or ''}"
    return "cmp_" + hashlib.sha256(composite.encode("utf-8")).hexdigest()[:40]


def parse_paypal_event(body: object) -> PaypalEvent:
    """Extracts the fields each handled event needs, or raises with a 400 message."""
    if not isinstance(body, Mapping):
        raise PaypalEventValidationError("Invalid payload")
    event_type = _text(body.get("event_type"))
    if event_type is None:
        raise PaypalEventValidationError("Missing event_type")

    raw_resource = body.get("resource")
    resource: Mapping[str, object] = raw_resource if isinstance(raw_resource, Mapping) else {}
    dedup_key = build_dedup_key(body, resource)

    if event_type == SALE_COMPLETED:
        user_id = _text(resource.get("custom")) or _text(resource.get("invoice_id"))
        if user_id is None:
            raise PaypalEventValidationError("Missing custom ID")
        amount = resource.get("amount")
        total = parse_amount(amount.get("total")) if isinstance(amount, Mapping) else None
        if total is None or total < 0:
            raise PaypalEventValidationError("Missing amount total")
        return PaypalEvent(
            event_type=event_type,
            dedup_key=dedup_key,
            user_id=user_id,
            order_id=_text(resource.get("id")) or dedup_key,
            amount_total=total,
            plan_type=resolve_plan_type(explicit_plan=resource.get("plan_type"), total=total),
            paid_at=_parse_timestamp(resource.get("create_time")),
        )

    if event_type in {SUBSCRIPTION_PAYMENT_FAILED, SUBSCRIPTION_CANCELLED}:
        user_id = _text(resource.get("custom_id"))
        if user_id is None:
            raise PaypalEventValidationError("Missing user ID")
        return PaypalEvent(
            event_type=event_type,
            dedup_key=dedup_key,
            user_id=user_id,
            subscription_id=_text(resource.get("id")),
        )

    if event_type in {PAYOUT_ITEM_SUCCEEDED, PAYOUT_ITEM_FAILED}:
        payout_item_id = _text(resource.get("payout_item_id"))
        if payout_item_id is None:
            raise PaypalEventValidationError("Missing payout item ID")
        return PaypalEvent(
            event_type=event_type,
            dedup_key=dedup_key,
            payout_item_id=payout_item_id,
        )

    return PaypalEvent(event_type=event_type, dedup_key=dedup_key)
