from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest

from storefront.api.routes import (
    access,
    admin_members,
    admin_payouts,
    admin_users,
    affiliate_applications,
    health,
    payfast_webhook,
    paypal_webhook,
)
from storefront.core.config import PAYFAST_PUBLISHED_CIDRS
from storefront.main import app
from tests.api.route_fixtures import JWT_SECRET, PAYFAST_PEER, PAYPAL_SECRET, PAYPAL_WEBHOOK_ID

SESSION_ROUTE_MODULES = (
    admin_members,
    admin_payouts,
    admin_users,
    affiliate_applications,
    health,
    payfast_webhook,
    paypal_webhook,
)
SETTINGS_ROUTE_MODULES = (
    access,
    admin_users,
    affiliate_applications,
    payfast_webhook,
    paypal_webhook,
)


@pytest.fixture
def route_settings() -> SimpleNamespace:
    return SimpleNamespace(
        paypal_webhook_id=PAYPAL_WEBHOOK_ID,
        paypal_webhook_secret=PAYPAL_SECRET,
        payfast_allowed_ips=PAYFAST_PUBLISHED_CIDRS,
        payfast_trusted_proxies="",
        auth_jwt_secret=JWT_SECRET,
        auth_jwt_algorithm="HS256",
        admin_owner_email="owner@example.com",
        fx_usd_zar_rate=Decimal("18"),
        fx_rates_as_of=date.today(),
        fx_max_age_days=30,
        membership_extension_days=30,
        affiliate_auto_approve_minutes=60,
        push_broadcast_all_limit=1000,
    )


@pytest.fixture
async def api_client(session_factory, route_settings, monkeypatch) -> AsyncIterator[httpx.AsyncClient]:
    for module in SESSION_ROUTE_MODULES:
        monkeypatch.setattr(module, "SessionLocal", session_factory)
    for module in SETTINGS_ROUTE_MODULES:
        monkeypatch.setattr(module, "get_settings", lambda: route_settings)

    transport = httpx.ASGITransport(app=app, client=PAYFAST_PEER)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
