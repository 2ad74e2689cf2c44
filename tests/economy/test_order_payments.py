from __future__ import annotations

from decimal import Decimal

import pytest

from storefront.db.models.commissions import Commission
from storefront.db.models.orders import Order
from storefront.economy.orders.errors import OrderNotFoundError
from storefront.economy.orders.service import OrderPaymentService
from tests.ledger_fixtures import FX_RATES, NOW, count_rows, create_order, create_user, load_user

REFERRAL_META = {"affiliate_referral": {"commission_percent": 10}}


async def _complete(session_factory, order_id: str, payment_id: str = "991"):
    async with session_factory.begin() as session:
        return await OrderPaymentService.apply_completed_payment(
            session,
            order_id=order_id,
            provider_payment_id=payment_id,
            now_utc=NOW,
            fx_rates=FX_RATES,
        )


async def _load_order(session_factory, order_id: str) -> Order | None:
    async with session_factory() as session:
        return await session.get(Order, order_id)


@pytest.mark.asyncio
async def test_completed_referred_order_earns_percentage_commission(session_factory) -> None:
    await create_user(session_factory, "aff_1", is_affiliate=True)
    await create_user(session_factory, "buyer_1", referrer_id="aff_1")
    await create_order(session_factory, "ORD-1", user_id="buyer_1", total=Decimal("500.00"), meta=REFERRAL_META)

    result = await _complete(session_factory, "ORD-1")

    assert result.outcome == "processing"
    assert result.commission is not None
    assert result.commission.outcome == "credited"
    assert result.commission.amount == Decimal("50.00")
    assert result.commission.credited_amount == Decimal("2.78")
    order = await _load_order(session_factory, "ORD-1")
    assert order is not None
    assert order.status == "processing"
    assert order.provider_payment_id == "991"
    affiliate = await load_user(session_factory, "aff_1")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("2.78")


@pytest.mark.asyncio
async def test_repeated_completion_is_settled_once(session_factory) -> None:
    await create_user(session_factory, "aff_1", is_affiliate=True)
    await create_user(session_factory, "buyer_1", referrer_id="aff_1")
    await create_order(session_factory, "ORD-1", user_id="buyer_1", total=Decimal("500.00"), meta=REFERRAL_META)

    await _complete(session_factory, "ORD-1")
    replay = await _complete(session_factory, "ORD-1")

    assert replay.outcome == "already_settled"
    assert replay.idempotent_replay is True
    assert await count_rows(session_factory, Commission) == 1


@pytest.mark.asyncio
async def test_order_without_referral_block_has_no_commission(session_factory) -> None:
    await create_user(session_factory, "aff_1", is_affiliate=True)
    await create_user(session_factory, "buyer_1", referrer_id="aff_1")
    await create_order(session_factory, "ORD-1", user_id="buyer_1", total=Decimal("500.00"))

    result = await _complete(session_factory, "ORD-1")

    assert result.outcome == "processing"
    assert result.commission is None
    assert await count_rows(session_factory, Commission) == 0


@pytest.mark.asyncio
async def test_cancelled_payment_only_moves_pending_orders(session_factory) -> None:
    await create_order(session_factory, "ORD-1", user_id=None, total=Decimal("80.00"))
    await create_order(session_factory, "ORD-2", user_id=None, total=Decimal("80.00"))
    await _complete(session_factory, "ORD-2")

    async with session_factory.begin() as session:
        cancelled = await OrderPaymentService.apply_cancelled_payment(session, order_id="ORD-1", now_utc=NOW)
    async with session_factory.begin() as session:
        too_late = await OrderPaymentService.apply_cancelled_payment(session, order_id="ORD-2", now_utc=NOW)

    assert cancelled.outcome == "cancelled"
    assert too_late.outcome == "already_settled"
    first = await _load_order(session_factory, "ORD-1")
    second = await _load_order(session_factory, "ORD-2")
    assert first is not None and second is not None
    assert first.status == "cancelled"
    assert second.status == "processing"


@pytest.mark.asyncio
async def test_unknown_order_raises(session_factory) -> None:
    with pytest.raises(OrderNotFoundError):
        await _complete(session_factory, "ORD-missing")
