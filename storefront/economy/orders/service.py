from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.repo.orders_repo import OrdersRepo
from storefront.economy.commissions.errors import CommissionNotPayableError
from storefront.economy.commissions.fx import ExchangeRates
from storefront.economy.commissions.service import (
    CommissionService,
    parse_store_referral,
    skipped_commission,
)
from storefront.economy.orders.errors import OrderNotFoundError
from storefront.economy.orders.types import OrderPaymentResult

logger = structlog.get_logger(__name__)


class OrderPaymentService:
    @staticmethod
    async def apply_completed_payment(
        session: AsyncSession,
        *,
        order_id: str,
        provider_payment_id: str | None,
        now_utc: datetime,
        fx_rates: ExchangeRates,
    ) -> OrderPaymentResult:
        order = await OrdersRepo.get_by_id(session, order_id)
        if order is None:
            raise OrderNotFoundError

        moved = await OrdersRepo.mark_processing_if_pending(
            session,
            order_id=order_id,
            provider_payment_id=provider_payment_id,
            now_utc=now_utc,
        )
        if not moved:
            logger.info("order_payment_already_settled", order_id=order_id, status=order.status)
            return OrderPaymentResult(order_id=order_id, outcome="already_settled")

        if order.user_id is None:
            return OrderPaymentResult(order_id=order_id, outcome="processing")

        try:
            store_referral = parse_store_referral(
                order.meta,
                order_total=order.total,
                customer_currency=order.currency,
            )
            if store_referral is None:
                return OrderPaymentResult(order_id=order_id, outcome="processing")

            commission = await CommissionService.process_affiliate_commission(
                session,
                user_id=order.user_id,
                order_id=order_id,
                source="store_order",
                now_utc=now_utc,
                fx_rates=fx_rates,
                store_referral=store_referral,
            )
        except CommissionNotPayableError as exc:
            commission = skipped_commission(exc, order_id=order_id, source="store_order")
        return OrderPaymentResult(order_id=order_id, outcome="processing", commission=commission)

    @staticmethod
    async def apply_cancelled_payment(
        session: AsyncSession,
        *,
        order_id: str,
        now_utc: datetime,
    ) -> OrderPaymentResult:
        order = await OrdersRepo.get_by_id(session, order_id)
        if order is None:
            raise OrderNotFoundError

        cancelled = await OrdersRepo.mark_cancelled_if_pending(
            session,
            order_id=order_id,
            now_utc=now_utc,
        )
        return OrderPaymentResult(
            order_id=order_id,
            outcome="cancelled" if cancelled else "already_settled",
        )
