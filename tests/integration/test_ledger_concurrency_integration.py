from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from storefront.db.models.commissions import Commission
from storefront.db.models.ledger_entries import LedgerEntry
from storefront.db.models.payouts import Payout
from storefront.db.session import SessionLocal
from storefront.economy.commissions.service import CommissionService
from storefront.economy.payouts.errors import InsufficientBalanceError
from storefront.economy.payouts.service import PayoutService
from tests.ledger_fixtures import FX_RATES, NOW, count_rows, create_user, load_user

pytestmark = pytest.mark.integration


async def _credit_once(order_id: str) -> str:
    async with SessionLocal.begin() as session:
        result = await CommissionService.process_affiliate_commission(
            session,
            user_id="user_42",
            order_id=order_id,
            source="paypal_sale",
            now_utc=NOW,
            fx_rates=FX_RATES,
            plan_type="gold",
        )
    return result.outcome


async def _request(amount: str) -> str:
    try:
        async with SessionLocal.begin() as session:
            await PayoutService.request_payout(
                session,
                affiliate_id="aff_1",
                amount=Decimal(amount),
                actor="admin_1",
                now_utc=NOW,
            )
    except InsufficientBalanceError:
        return "rejected"
    return "requested"


@pytest.mark.asyncio
async def test_concurrent_deliveries_credit_commission_once() -> None:
    await create_user(SessionLocal, "user_7", is_affiliate=True, affiliate_code="VIP1234")
    await create_user(SessionLocal, "user_42", referrer_id="user_7")

    outcomes = await asyncio.gather(*(_credit_once("SALE-RACE") for _ in range(5)))

    assert outcomes.count("credited") == 1
    assert await count_rows(SessionLocal, Commission) == 1
    assert await count_rows(SessionLocal, LedgerEntry, LedgerEntry.entry_type == "COMMISSION_CREDIT") == 1
    affiliate = await load_user(SessionLocal, "user_7")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("2.00")


@pytest.mark.asyncio
async def test_concurrent_payout_requests_never_overdraw() -> None:
    await create_user(
        SessionLocal,
        "aff_1",
        is_affiliate=True,
        affiliate_code="VIP0001",
        affiliate_status="active",
        affiliate_balance=Decimal("10.00"),
    )

    outcomes = await asyncio.gather(*(_request("4.00") for _ in range(4)))

    assert outcomes.count("requested") == 2
    assert outcomes.count("rejected") == 2
    assert await count_rows(SessionLocal, Payout) == 2
    affiliate = await load_user(SessionLocal, "aff_1")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("2.00")
