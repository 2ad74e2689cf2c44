from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.clock import ensure_utc, local_day_bounds_utc
from storefront.db.models.ledger_entries import LedgerEntry
from storefront.db.repo.ledger_repo import LedgerRepo
from storefront.db.repo.notifications_repo import NotificationsRepo
from storefront.db.repo.users_repo import UsersRepo
from storefront.economy.memberships.errors import (
    InvalidStoreCreditAmountError,
    StoreCreditUserNotFoundError,
    StoreCreditWouldGoNegativeError,
)
from storefront.economy.memberships.plans import format_credit, get_monthly_credit
from storefront.economy.memberships.types import StoreCreditAdjustmentResult

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


class StoreCreditService:
    @staticmethod
    async def adjust_store_credit(
        session: AsyncSession,
        *,
        user_id: str,
        amount: Decimal,
        actor: str,
        now_utc: datetime,
        idempotency_key: str | None = None,
    ) -> StoreCreditAdjustmentResult:
        delta = amount.quantize(CENT)
        if delta == 0:
            raise InvalidStoreCreditAmountError

        ledger_key = f"store_credit:admin:{idempotency_key or uuid4().hex}"
        existing_entry = await LedgerRepo.get_by_idempotency_key(session, ledger_key)
        if existing_entry is not None:
            signed = existing_entry.amount if existing_entry.direction == "CREDIT" else -existing_entry.amount
            return StoreCreditAdjustmentResult(
                user_id=existing_entry.user_id,
                delta=signed,
                store_credit=existing_entry.balance_after or Decimal("0"),
                idempotent_replay=True,
            )

        user = await UsersRepo.get_by_id(session, user_id)
        if user is None:
            raise StoreCreditUserNotFoundError

        new_balance = await UsersRepo.adjust_store_credit(
            session,
            user_id=user_id,
            delta=delta,
            now_utc=now_utc,
        )
        if new_balance is None:
            raise StoreCreditWouldGoNegativeError

        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=user_id,
                entry_type="STORE_CREDIT_ADJUSTMENT",
                asset="STORE_CREDIT",
                direction="CREDIT" if delta > 0 else "DEBIT",
                amount=abs(delta),
                currency=user.credit_currency,
                balance_after=new_balance,
                source="ADMIN",
                idempotency_key=ledger_key,
                metadata_={"actor": actor},
                created_at=now_utc,
            ),
        )
        if delta > 0:
            await NotificationsRepo.create(
                session,
                user_id=user_id,
                title="Store Credit Update",
                message=f"Your store credit has been adjusted by +{delta}.",
                notification_type="store_credit",
                created_at=now_utc,
            )

        logger.info(
            "store_credit_adjusted",
            user_id=user_id,
            delta=str(delta),
            store_credit=str(new_balance),
            actor=actor,
        )
        return StoreCreditAdjustmentResult(
            user_id=user_id,
            delta=delta,
            store_credit=new_balance,
            idempotent_replay=False,
        )

    @staticmethod
    async def run_monthly_credit_drop(
        session: AsyncSession,
        *,
        now_utc: datetime,
        tz_name: str,
        interval_days: int,
        batch_size: int,
    ) -> dict[str, int]:
        _, local_day_end_utc = local_day_bounds_utc(now_utc, tz_name=tz_name)
        due_users = await UsersRepo.list_credit_drop_due(
            session,
            due_before_utc=local_day_end_utc,
            limit=batch_size,
        )

        credited = 0
        skipped_unknown_tier = 0
        skipped_raced = 0
        next_drop_at = now_utc + timedelta(days=interval_days)
        for user in due_users:
            credit = get_monthly_credit(user.membership_tier)
            if credit is None:
                skipped_unknown_tier += 1
                logger.warning(
                    "monthly_credit_unknown_tier",
                    user_id=user.id,
                    membership_tier=user.membership_tier,
                )
                continue

            expected_drop_at = user.next_credit_drop_at
            new_balance = await UsersRepo.apply_credit_drop(
                session,
                user_id=user.id,
                expected_drop_at=expected_drop_at,
                next_drop_at=next_drop_at,
                amount=credit.amount,
                now_utc=now_utc,
            )
            if new_balance is None:
                skipped_raced += 1
                continue

            drop_marker = ensure_utc(expected_drop_at)
            await LedgerRepo.create(
                session,
                entry=LedgerEntry(
                    user_id=user.id,
                    entry_type="MONTHLY_CREDIT_DROP",
                    asset="STORE_CREDIT",
                    direction="CREDIT",
                    amount=credit.amount,
                    currency=credit.currency,
                    balance_after=new_balance,
                    source="SCHEDULER",
                    idempotency_key=f"store_credit:drop:{user.id}:{drop_marker.isoformat()}",
                    metadata_={"membership_tier": user.membership_tier},
                    created_at=now_utc,
                ),
            )
            await NotificationsRepo.create(
                session,
                user_id=user.id,
                title="Monthly Credit Arrived",
                message=(
                    f"Your monthly member credit of {format_credit(credit.amount, credit.currency)} "
                    "has arrived! Happy Shopping."
                ),
                notification_type="credit_received",
                created_at=now_utc,
            )
            credited += 1

        return {
            "due_total": len(due_users),
            "credited_total": credited,
            "skipped_unknown_tier": skipped_unknown_tier,
            "skipped_raced": skipped_raced,
        }
