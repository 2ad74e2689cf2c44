from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.economy.commissions.errors import CommissionNotPayableError
from storefront.economy.commissions.fx import ExchangeRates
from storefront.economy.commissions.service import CommissionService, skipped_commission
from storefront.economy.memberships.service import MembershipService
from storefront.economy.payouts.service import PayoutService
from storefront.services.paypal_events import (
    PAYOUT_ITEM_FAILED,
    PAYOUT_ITEM_SUCCEEDED,
    SALE_COMPLETED,
    SUBSCRIPTION_CANCELLED,
    SUBSCRIPTION_PAYMENT_FAILED,
    PaypalEvent,
)
from storefront.services.webhook_processing import EventHandler

PROVIDER = "paypal"


async def apply_paypal_event(
    session: AsyncSession,
    *,
    event: PaypalEvent,
    now_utc: datetime,
    fx_rates: ExchangeRates,
    extension_days: int,
) -> str:
    if event.event_type == SALE_COMPLETED:
        assert event.user_id is not None and event.order_id is not None
        await MembershipService.extend_membership(
            session,
            user_id=event.user_id,
            now_utc=now_utc,
            paid_at=event.paid_at,
            extension_days=extension_days,
        )
        try:
            commission = await CommissionService.process_affiliate_commission(
                session,
                user_id=event.user_id,
                order_id=event.order_id,
                source="paypal_sale",
                now_utc=now_utc,
                fx_rates=fx_rates,
                plan_type=event.plan_type,
            )
        except CommissionNotPayableError as exc:
            commission = skipped_commission(exc, order_id=event.order_id, source="paypal_sale")
        return f"membership_extended:commission_{commission.outcome}"

    if event.event_type == SUBSCRIPTION_PAYMENT_FAILED:
        assert event.user_id is not None
        result = await MembershipService.handle_payment_failure(
            session,
            user_id=event.user_id,
            now_utc=now_utc,
        )
        return "grace_period_started" if result.applied else "payment_failure_noop"

    if event.event_type == SUBSCRIPTION_CANCELLED:
        assert event.user_id is not None
        result = await MembershipService.handle_subscription_cancelled(
            session,
            user_id=event.user_id,
            subscription_id=event.subscription_id,
            now_utc=now_utc,
        )
        return "cancellation_recorded" if result.applied else "cancellation_noop"

    if event.event_type == PAYOUT_ITEM_SUCCEEDED:
        assert event.payout_item_id is not None
        payout = await PayoutService.handle_payout_success(
            session,
            payout_item_id=event.payout_item_id,
            now_utc=now_utc,
        )
        return f"payout_{payout.outcome}"

    if event.event_type == PAYOUT_ITEM_FAILED:
        assert event.payout_item_id is not None
        payout = await PayoutService.handle_payout_failure(
            session,
            payout_item_id=event.payout_item_id,
            now_utc=now_utc,
        )
        return f"payout_{payout.outcome}"

    return "ignored"


def build_paypal_handler(
    event: PaypalEvent,
    *,
    now_utc: datetime,
    fx_rates: ExchangeRates,
    extension_days: int,
) -> EventHandler:
    async def _handler(session: AsyncSession) -> str:
        return await apply_paypal_event(
            session,
            event=event,
            now_utc=now_utc,
            fx_rates=fx_rates,
            extension_days=extension_days,
        )

    return _handler
