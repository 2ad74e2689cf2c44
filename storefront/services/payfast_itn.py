from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import parse_qsl

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.economy.commissions.fx import ExchangeRates
from storefront.economy.orders.service import OrderPaymentService
from storefront.services.webhook_processing import EventHandler

PROVIDER = "payfast"
STATUS_COMPLETE = "COMPLETE"
CANCELLING_STATUSES = frozenset({"CANCELLED", "FAILED"})


class PayfastItnValidationError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True, slots=True)
class PayfastNotification:
    payment_status: str
    order_id: str
    pf_payment_id: str | None

    @property
    def dedup_key(self) -> str:
        if self.pf_payment_id:
            return f"pf_{self.pf_payment_id}:{self.payment_status}"
        return f"order_{self.order_id}:{self.payment_status}"

    @property
    def event_type(self) -> str:
        return f"ITN.{self.payment_status}"


def parse_form_body(raw_body: bytes) -> dict[str, str]:
    try:
        text = raw_body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayfastItnValidationError("Invalid payload encoding") from exc
    fields = dict(parse_qsl(text, keep_blank_values=True))
    if not fields:
        raise PayfastItnValidationError("Empty payload")
    return fields


def parse_payfast_itn(fields: Mapping[str, object]) -> PayfastNotification:
    payment_status = str(fields.get("payment_status") or "").strip().upper()
    if not payment_status:
        raise PayfastItnValidationError("Missing payment_status")

    order_id = str(fields.get("custom_str1") or fields.get("m_payment_id") or "").strip()
    if not order_id:
        raise PayfastItnValidationError("Missing order reference")

    pf_payment_id = str(fields.get("pf_payment_id") or "").strip() or None
    return PayfastNotification(
        payment_status=payment_status,
        order_id=order_id,
        pf_payment_id=pf_payment_id,
    )


async def apply_payfast_notification(
    session: AsyncSession,
    *,
    notification: PayfastNotification,
    now_utc: datetime,
    fx_rates: ExchangeRates,
) -> str:
    if notification.payment_status == STATUS_COMPLETE:
        completed = await OrderPaymentService.apply_completed_payment(
            session,
            order_id=notification.order_id,
            provider_payment_id=notification.pf_payment_id,
            now_utc=now_utc,
            fx_rates=fx_rates,
        )
        if completed.commission is not None:
            return f"order_{completed.outcome}:commission_{completed.commission.outcome}"
        return f"order_{completed.outcome}"

    if notification.payment_status in CANCELLING_STATUSES:
        cancelled = await OrderPaymentService.apply_cancelled_payment(
            session,
            order_id=notification.order_id,
            now_utc=now_utc,
        )
        return f"order_{cancelled.outcome}"

    return "status_ignored"


def build_payfast_handler(
    notification: PayfastNotification,
    *,
    now_utc: datetime,
    fx_rates: ExchangeRates,
) -> EventHandler:
    async def _handler(session: AsyncSession) -> str:
        return await apply_payfast_notification(
            session,
            notification=notification,
            now_utc=now_utc,
            fx_rates=fx_rates,
        )

    return _handler
