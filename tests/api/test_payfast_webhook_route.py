from __future__ import annotations

from decimal import Decimal
from urllib.parse import urlencode

import httpx
import pytest

from storefront.db.models.orders import Order
from storefront.db.models.processed_webhook_events import ProcessedWebhookEvent
from storefront.main import app
from tests.ledger_fixtures import count_rows, create_order, create_user, load_user

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def _itn(**fields: str) -> str:
    base = {"m_payment_id": "ORD-1", "pf_payment_id": "991", "payment_status": "COMPLETE"}
    base.update(fields)
    return urlencode(base)


async def _load_order(session_factory, order_id: str) -> Order | None:
    async with session_factory() as session:
        return await session.get(Order, order_id)


@pytest.mark.asyncio
async def test_complete_itn_moves_order_and_pays_commission(api_client, session_factory) -> None:
    await create_user(session_factory, "aff_1", is_affiliate=True)
    await create_user(session_factory, "buyer_1", referrer_id="aff_1")
    await create_order(
        session_factory,
        "ORD-1",
        user_id="buyer_1",
        total=Decimal("500.00"),
        meta={"affiliateReferral": {"commissionPercent": 10}},
    )

    response = await api_client.post("/webhooks/payfast", content=_itn(), headers=FORM_HEADERS)

    assert response.status_code == 200
    assert response.text == "OK"
    order = await _load_order(session_factory, "ORD-1")
    assert order is not None
    assert order.status == "processing"
    affiliate = await load_user(session_factory, "aff_1")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("2.78")


@pytest.mark.asyncio
async def test_duplicate_itn_is_acknowledged_once(api_client, session_factory) -> None:
    await create_order(session_factory, "ORD-1", user_id=None, total=Decimal("80.00"))

    first = await api_client.post("/webhooks/payfast", content=_itn(), headers=FORM_HEADERS)
    second = await api_client.post("/webhooks/payfast", content=_itn(), headers=FORM_HEADERS)

    assert first.text == second.text == "OK"
    assert await count_rows(session_factory, ProcessedWebhookEvent) == 1


@pytest.mark.asyncio
async def test_cancelled_itn_cancels_pending_order(api_client, session_factory) -> None:
    await create_order(session_factory, "ORD-1", user_id=None, total=Decimal("80.00"))

    response = await api_client.post(
        "/webhooks/payfast",
        content=_itn(payment_status="CANCELLED"),
        headers=FORM_HEADERS,
    )

    assert response.status_code == 200
    order = await _load_order(session_factory, "ORD-1")
    assert order is not None
    assert order.status == "cancelled"


@pytest.mark.asyncio
async def test_itn_from_outside_allowlist_is_forbidden(api_client, session_factory) -> None:
    await create_order(session_factory, "ORD-1", user_id=None, total=Decimal("80.00"))
    transport = httpx.ASGITransport(app=app, client=("203.0.113.9", 5000))

    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as outsider:
        response = await outsider.post("/webhooks/payfast", content=_itn(), headers=FORM_HEADERS)

    assert response.status_code == 403
    assert response.text == "IP not allowed"
    order = await _load_order(session_factory, "ORD-1")
    assert order is not None
    assert order.status == "pending"


@pytest.mark.asyncio
async def test_itn_without_status_is_400(api_client) -> None:
    response = await api_client.post(
        "/webhooks/payfast",
        content=urlencode({"m_payment_id": "ORD-1"}),
        headers=FORM_HEADERS,
    )

    assert response.status_code == 400
    assert response.text == "Missing payment_status"


@pytest.mark.asyncio
async def test_itn_for_unknown_order_is_acknowledged(api_client, session_factory) -> None:
    response = await api_client.post("/webhooks/payfast", content=_itn(), headers=FORM_HEADERS)

    assert response.status_code == 200
    async with session_factory() as session:
        row = await session.get(ProcessedWebhookEvent, ("payfast", "pf_991:COMPLETE"))
    assert row is not None
    assert row.outcome == "ignored_not_found"
