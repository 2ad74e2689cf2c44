from __future__ import annotations

import pytest
from sqlalchemy import select

from storefront.db.models.notifications import Notification
from storefront.db.models.outbox_events import OutboxEvent
from storefront.db.models.push_tokens import PushToken
from storefront.economy.broadcasts.errors import InvalidBroadcastTargetError, NoActiveDevicesError
from storefront.economy.broadcasts.service import BroadcastService
from tests.ledger_fixtures import NOW, count_rows, create_user


async def _seed(session_factory) -> None:
    await create_user(session_factory, "gold_1", membership_tier="Gold Member")
    await create_user(session_factory, "gold_2", membership_tier="Gold Member")
    await create_user(session_factory, "basic_1", membership_tier="Basic")
    await create_user(session_factory, "gone_1", membership_tier="Gold Member", status="deleted")
    async with session_factory.begin() as session:
        session.add_all(
            [
                PushToken(user_id="gold_1", token="tok-g1-a", platform="ios", created_at=NOW),
                PushToken(user_id="gold_1", token="tok-g1-b", platform="android", created_at=NOW),
                PushToken(user_id="basic_1", token="tok-b1", platform="ios", created_at=NOW),
                PushToken(user_id="gone_1", token="tok-gone", platform="ios", created_at=NOW),
            ]
        )


async def _send(session_factory, target_type: str, target_value: str | None):
    async with session_factory.begin() as session:
        return await BroadcastService.send_bulk_push(
            session,
            target_type=target_type,
            target_value=target_value,
            title="New drop",
            body="Fresh merch is live",
            link="/store",
            image_url=None,
            actor="admin_1",
            now_utc=NOW,
            audience_limit=100,
        )


@pytest.mark.asyncio
async def test_tier_broadcast_reaches_devices_of_active_members(session_factory) -> None:
    await _seed(session_factory)

    result = await _send(session_factory, "tier", "Gold Member")

    assert result.target_type == "tier"
    assert result.user_count == 1
    assert result.device_count == 2
    async with session_factory() as session:
        event = (await session.execute(select(OutboxEvent))).scalar_one()
    assert event.status == "PENDING"
    assert event.payload["tokens"] == ["tok-g1-a", "tok-g1-b"]
    assert await count_rows(session_factory, Notification, Notification.notification_type == "broadcast") == 1


@pytest.mark.asyncio
async def test_all_broadcast_skips_deleted_accounts(session_factory) -> None:
    await _seed(session_factory)

    result = await _send(session_factory, "ALL", None)

    assert result.user_count == 2
    assert result.device_count == 3


@pytest.mark.asyncio
async def test_individual_without_devices_raises(session_factory) -> None:
    await _seed(session_factory)

    with pytest.raises(NoActiveDevicesError):
        await _send(session_factory, "individual", "gold_2")
    assert await count_rows(session_factory, OutboxEvent) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(("target_type", "target_value"), [("segment", "x"), ("tier", " "), ("individual", None)])
async def test_invalid_targets_raise(session_factory, target_type: str, target_value: str | None) -> None:
    with pytest.raises(InvalidBroadcastTargetError):
        await _send(session_factory, target_type, target_value)
