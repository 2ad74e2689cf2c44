from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.repo.notifications_repo import NotificationsRepo
from storefront.db.repo.outbox_events_repo import OutboxEventsRepo
from storefront.db.repo.push_tokens_repo import PushTokensRepo
from storefront.db.repo.users_repo import UsersRepo
from storefront.economy.broadcasts.errors import InvalidBroadcastTargetError, NoActiveDevicesError
from storefront.economy.broadcasts.types import BroadcastResult

logger = structlog.get_logger(__name__)

PUSH_BROADCAST_EVENT = "push_broadcast"
TARGET_TYPES = frozenset({"individual", "tier", "all"})


class BroadcastService:
    @staticmethod
    async def send_bulk_push(
        session: AsyncSession,
        *,
        target_type: str,
        target_value: str | None,
        title: str,
        body: str,
        link: str | None,
        image_url: str | None,
        actor: str,
        now_utc: datetime,
        audience_limit: int,
    ) -> BroadcastResult:
        normalized_target = target_type.strip().lower()
        if normalized_target not in TARGET_TYPES:
            raise InvalidBroadcastTargetError
        if normalized_target != "all" and not (target_value or "").strip():
            raise InvalidBroadcastTargetError
        if not title.strip() or not body.strip():
            raise InvalidBroadcastTargetError

        user_ids = await UsersRepo.list_push_target_ids(
            session,
            target_type=normalized_target,
            target_value=(target_value or "").strip() or None,
            limit=1 if normalized_target == "individual" else audience_limit,
        )
        token_rows = await PushTokensRepo.list_tokens_for_users(session, user_ids)
        tokens = list(dict.fromkeys(token for _, token in token_rows))
        if not tokens:
            raise NoActiveDevicesError

        reached_user_ids = list(dict.fromkeys(user_id for user_id, _ in token_rows))
        await NotificationsRepo.create_many(
            session,
            user_ids=reached_user_ids,
            title=title.strip(),
            message=body.strip(),
            notification_type="broadcast",
            link=link,
            created_at=now_utc,
        )
        event = await OutboxEventsRepo.create(
            session,
            event_type=PUSH_BROADCAST_EVENT,
            payload={
                "tokens": tokens,
                "title": title.strip(),
                "body": body.strip(),
                "link": link,
                "image_url": image_url,
                "target_type": normalized_target,
                "actor": actor,
            },
            status="PENDING",
            created_at=now_utc,
        )
        logger.info(
            "push_broadcast_queued",
            target_type=normalized_target,
            user_count=len(reached_user_ids),
            device_count=len(tokens),
            outbox_event_id=event.id,
            actor=actor,
        )
        return BroadcastResult(
            target_type=normalized_target,
            user_count=len(reached_user_ids),
            device_count=len(tokens),
            outbox_event_id=event.id,
        )
