from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from storefront.db.models.push_tokens import PushToken
from tests.api.route_fixtures import bearer
from tests.ledger_fixtures import NOW, create_user, load_user

ADMIN = bearer("admin_1", admin=True)
OWNER = bearer("owner_1", email="Owner@Example.com")


@pytest.mark.asyncio
async def test_admin_routes_require_a_token(api_client) -> None:
    response = await api_client.post("/admin/users/user_1/trial", json={"plan": "Basic", "days": 7})

    assert response.status_code == 401
    assert response.json() == {"detail": {"code": "E_UNAUTHENTICATED"}}


@pytest.mark.asyncio
async def test_admin_routes_refuse_plain_members(api_client) -> None:
    response = await api_client.post(
        "/admin/users/user_1/trial",
        json={"plan": "Basic", "days": 7},
        headers=bearer("member_1", email="member@example.com"),
    )

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


@pytest.mark.asyncio
async def test_owner_email_grants_trial(api_client, session_factory) -> None:
    await create_user(session_factory, "user_1")

    response = await api_client.post(
        "/admin/users/user_1/trial",
        json={"plan": "Premium", "days": 7},
        headers=OWNER,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["plan"] == "Premium"
    assert payload["credit_currency"] == "ZAR"
    user = await load_user(session_factory, "user_1")
    assert user is not None
    assert user.membership_status == "trial"


@pytest.mark.asyncio
async def test_trial_for_unknown_user_is_404(api_client) -> None:
    response = await api_client.post(
        "/admin/users/ghost/trial",
        json={"plan": "Premium", "days": 7},
        headers=ADMIN,
    )

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_USER_NOT_FOUND"}}


@pytest.mark.asyncio
async def test_store_credit_idempotency_header(api_client, session_factory) -> None:
    await create_user(session_factory, "user_1")
    headers = {**ADMIN, "Idempotency-Key": "credit-req-1"}

    first = await api_client.post("/admin/users/user_1/store-credit", json={"amount": "15.00"}, headers=headers)
    second = await api_client.post("/admin/users/user_1/store-credit", json={"amount": "15.00"}, headers=headers)

    assert first.status_code == second.status_code == 200
    assert first.json()["idempotent_replay"] is False
    assert second.json()["idempotent_replay"] is True
    user = await load_user(session_factory, "user_1")
    assert user is not None
    assert user.store_credit == Decimal("15.00")


@pytest.mark.asyncio
async def test_store_credit_overdraw_is_409(api_client, session_factory) -> None:
    await create_user(session_factory, "user_1")

    response = await api_client.post(
        "/admin/users/user_1/store-credit",
        json={"amount": "-1.00"},
        headers=ADMIN,
    )

    assert response.status_code == 409
    assert response.json() == {"detail": {"code": "E_STORE_CREDIT_INSUFFICIENT"}}


@pytest.mark.asyncio
async def test_payout_request_and_submission(api_client, session_factory) -> None:
    await create_user(
        session_factory,
        "aff_1",
        is_affiliate=True,
        affiliate_code="VIP3333",
        affiliate_balance=Decimal("10.00"),
    )

    created = await api_client.post(
        "/admin/payouts",
        json={"affiliate_id": "aff_1", "amount": "7.50"},
        headers=ADMIN,
    )
    assert created.status_code == 200
    payout_id = created.json()["payout_id"]
    assert Decimal(created.json()["affiliate_balance"]) == Decimal("2.50")

    submitted = await api_client.post(
        f"/admin/payouts/{payout_id}/submitted",
        json={"provider_payout_item_id": "PI-77"},
        headers=ADMIN,
    )
    replay = await api_client.post(
        f"/admin/payouts/{payout_id}/submitted",
        json={"provider_payout_item_id": "PI-77"},
        headers=ADMIN,
    )
    conflict = await api_client.post(
        f"/admin/payouts/{payout_id}/submitted",
        json={"provider_payout_item_id": "PI-78"},
        headers=ADMIN,
    )

    assert submitted.json()["outcome"] == "processing"
    assert replay.json() == {"payout_id": payout_id, "outcome": "already_processing", "idempotent_replay": True}
    assert conflict.status_code == 409


@pytest.mark.asyncio
async def test_payout_over_balance_is_409(api_client, session_factory) -> None:
    await create_user(session_factory, "aff_1", is_affiliate=True, affiliate_balance=Decimal("1.00"))

    response = await api_client.post(
        "/admin/payouts",
        json={"affiliate_id": "aff_1", "amount": "1.01"},
        headers=ADMIN,
    )

    assert response.status_code == 409
    assert response.json() == {"detail": {"code": "E_INSUFFICIENT_BALANCE"}}


@pytest.mark.asyncio
async def test_unknown_payout_is_404(api_client) -> None:
    response = await api_client.post(
        f"/admin/payouts/{uuid4()}/submitted",
        json={"provider_payout_item_id": "PI-1"},
        headers=ADMIN,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_member_applies_and_admin_approves(api_client, session_factory) -> None:
    await create_user(session_factory, "user_1")

    applied = await api_client.post(
        "/affiliate-applications",
        json={"pitch": "Big fan community"},
        headers=bearer("user_1"),
    )
    assert applied.status_code == 200
    assert applied.json()["status"] == "pending"
    application_id = applied.json()["application_id"]

    invalid = await api_client.post(
        f"/admin/affiliate-applications/{application_id}/review",
        json={"decision": "maybe"},
        headers=ADMIN,
    )
    assert invalid.status_code == 400
    assert invalid.json() == {"detail": {"code": "E_REVIEW_DECISION_INVALID"}}

    approved = await api_client.post(
        f"/admin/affiliate-applications/{application_id}/review",
        json={"decision": "approve"},
        headers=ADMIN,
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["affiliate_code"].startswith("VIP")

    rejected_late = await api_client.post(
        f"/admin/affiliate-applications/{application_id}/review",
        json={"decision": "reject", "reason": "changed my mind"},
        headers=ADMIN,
    )
    assert rejected_late.status_code == 409
    assert rejected_late.json() == {
        "detail": {"code": "E_APPLICATION_ALREADY_DECIDED", "status": "approved"}
    }


@pytest.mark.asyncio
async def test_reject_without_reason_is_400(api_client, session_factory) -> None:
    await create_user(session_factory, "user_1")
    applied = await api_client.post("/affiliate-applications", json={}, headers=bearer("user_1"))

    response = await api_client.post(
        f"/admin/affiliate-applications/{applied.json()['application_id']}/review",
        json={"decision": "reject"},
        headers=ADMIN,
    )

    assert response.status_code == 400
    assert response.json() == {"detail": {"code": "E_REJECTION_REASON_REQUIRED"}}


@pytest.mark.asyncio
async def test_existing_affiliate_cannot_apply(api_client, session_factory) -> None:
    await create_user(session_factory, "aff_1", is_affiliate=True, affiliate_code="VIP4444")

    response = await api_client.post("/affiliate-applications", json={}, headers=bearer("aff_1"))

    assert response.status_code == 409
    assert response.json() == {"detail": {"code": "E_ALREADY_AFFILIATE"}}


@pytest.mark.asyncio
async def test_delete_user_soft_and_self_deletion(api_client, session_factory) -> None:
    await create_user(session_factory, "user_1")

    soft = await api_client.delete("/admin/users/user_1", params={"soft": "true"}, headers=ADMIN)
    own = await api_client.delete("/admin/users/admin_1", headers=ADMIN)

    assert soft.status_code == 200
    assert soft.json()["mode"] == "soft"
    assert own.status_code == 400
    assert own.json() == {"detail": {"code": "E_SELF_DELETION"}}
    user = await load_user(session_factory, "user_1")
    assert user is not None
    assert user.status == "deleted"


@pytest.mark.asyncio
async def test_bulk_push_queues_or_reports_no_devices(api_client, session_factory) -> None:
    await create_user(session_factory, "user_1", membership_tier="Basic")
    await create_user(session_factory, "user_2", membership_tier="Premium")
    async with session_factory.begin() as session:
        session.add(PushToken(user_id="user_1", token="tok-1", platform="ios", created_at=NOW))

    queued = await api_client.post(
        "/admin/push",
        json={"target_type": "tier", "target_value": "Basic", "title": "Hi", "body": "New stock"},
        headers=ADMIN,
    )
    empty = await api_client.post(
        "/admin/push",
        json={"target_type": "individual", "target_value": "user_2", "title": "Hi", "body": "Psst"},
        headers=ADMIN,
    )

    assert queued.status_code == 200
    assert queued.json()["device_count"] == 1
    assert empty.status_code == 404
    assert empty.json() == {
        "detail": {"code": "E_NO_ACTIVE_DEVICES", "message": "No active devices found for this target."}
    }
