from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import delete, select

from storefront.db.models.ledger_entries import LedgerEntry
from storefront.db.models.payouts import Payout
from storefront.db.models.users import User
from storefront.economy.payouts.errors import (
    InsufficientBalanceError,
    InvalidPayoutAmountError,
    PayoutAffiliateNotFoundError,
    PayoutNotFoundError,
    PayoutStateConflictError,
)
from storefront.economy.payouts.service import PayoutService
from tests.ledger_fixtures import NOW, count_rows, create_user, load_user


async def _affiliate_with_balance(session_factory, balance: str = "10.00") -> None:
    await create_user(
        session_factory,
        "aff_1",
        is_affiliate=True,
        affiliate_code="VIP0001",
        affiliate_status="active",
        affiliate_balance=Decimal(balance),
    )


async def _submitted_payout(session_factory, *, amount: str = "4.00", item_id: str = "PI-1"):
    async with session_factory.begin() as session:
        requested = await PayoutService.request_payout(
            session,
            affiliate_id="aff_1",
            amount=Decimal(amount),
            actor="admin_1",
            now_utc=NOW,
        )
    async with session_factory.begin() as session:
        await PayoutService.mark_submitted(
            session,
            payout_id=requested.payout_id,
            provider_payout_item_id=item_id,
            now_utc=NOW,
        )
    return requested


@pytest.mark.asyncio
async def test_request_payout_debits_balance_and_writes_ledger(session_factory) -> None:
    await _affiliate_with_balance(session_factory)

    async with session_factory.begin() as session:
        result = await PayoutService.request_payout(
            session,
            affiliate_id="aff_1",
            amount=Decimal("4"),
            actor="admin_1",
            now_utc=NOW,
        )

    assert result.amount == Decimal("4.00")
    assert result.affiliate_balance == Decimal("6.00")
    assert result.sender_item_id.startswith("payout_")
    affiliate = await load_user(session_factory, "aff_1")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("6.00")
    async with session_factory() as session:
        payout = await session.get(Payout, result.payout_id)
        entry = (await session.execute(select(LedgerEntry))).scalar_one()
    assert payout is not None
    assert payout.status == "pending"
    assert entry.entry_type == "PAYOUT_DEBIT"
    assert entry.direction == "DEBIT"


@pytest.mark.asyncio
async def test_payout_larger_than_balance_is_refused(session_factory) -> None:
    await _affiliate_with_balance(session_factory, "3.00")

    with pytest.raises(InsufficientBalanceError):
        async with session_factory.begin() as session:
            await PayoutService.request_payout(
                session,
                affiliate_id="aff_1",
                amount=Decimal("3.01"),
                actor="admin_1",
                now_utc=NOW,
            )

    affiliate = await load_user(session_factory, "aff_1")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("3.00")
    assert await count_rows(session_factory, Payout) == 0


@pytest.mark.asyncio
async def test_payout_request_validation(session_factory) -> None:
    await _affiliate_with_balance(session_factory)
    await create_user(session_factory, "member_1")

    async with session_factory() as session:
        with pytest.raises(InvalidPayoutAmountError):
            await PayoutService.request_payout(
                session, affiliate_id="aff_1", amount=Decimal("0"), actor="a", now_utc=NOW
            )
        with pytest.raises(PayoutAffiliateNotFoundError):
            await PayoutService.request_payout(
                session, affiliate_id="member_1", amount=Decimal("1"), actor="a", now_utc=NOW
            )
        with pytest.raises(PayoutAffiliateNotFoundError):
            await PayoutService.request_payout(
                session, affiliate_id="ghost", amount=Decimal("1"), actor="a", now_utc=NOW
            )


@pytest.mark.asyncio
async def test_mark_submitted_is_idempotent_for_same_item(session_factory) -> None:
    await _affiliate_with_balance(session_factory)
    requested = await _submitted_payout(session_factory)

    async with session_factory.begin() as session:
        replay = await PayoutService.mark_submitted(
            session,
            payout_id=requested.payout_id,
            provider_payout_item_id="PI-1",
            now_utc=NOW,
        )
    assert replay.outcome == "already_processing"

    async with session_factory() as session:
        with pytest.raises(PayoutStateConflictError):
            await PayoutService.mark_submitted(
                session,
                payout_id=requested.payout_id,
                provider_payout_item_id="PI-other",
                now_utc=NOW,
            )
        with pytest.raises(PayoutNotFoundError):
            await PayoutService.mark_submitted(
                session,
                payout_id=uuid4(),
                provider_payout_item_id="PI-1",
                now_utc=NOW,
            )


@pytest.mark.asyncio
async def test_payout_failure_refunds_exactly_once(session_factory) -> None:
    await _affiliate_with_balance(session_factory)
    requested = await _submitted_payout(session_factory)

    async with session_factory.begin() as session:
        first = await PayoutService.handle_payout_failure(session, payout_item_id="PI-1", now_utc=NOW)
    async with session_factory.begin() as session:
        second = await PayoutService.handle_payout_failure(session, payout_item_id="PI-1", now_utc=NOW)

    assert first.outcome == "failed_refunded"
    assert first.refunded_amount == Decimal("4.00")
    assert second.outcome == "already_failed"
    assert second.idempotent_replay is True
    affiliate = await load_user(session_factory, "aff_1")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("10.00")
    async with session_factory() as session:
        payout = await session.get(Payout, requested.payout_id)
    assert payout is not None
    assert payout.status == "failed"
    assert payout.refunded_at is not None
    assert await count_rows(session_factory, LedgerEntry, LedgerEntry.entry_type == "PAYOUT_REFUND") == 1


@pytest.mark.asyncio
async def test_failure_for_deleted_affiliate_leaves_refund_unstamped(session_factory) -> None:
    await _affiliate_with_balance(session_factory)
    requested = await _submitted_payout(session_factory)
    async with session_factory.begin() as session:
        await session.execute(delete(User).where(User.id == "aff_1"))

    async with session_factory.begin() as session:
        first = await PayoutService.handle_payout_failure(session, payout_item_id="PI-1", now_utc=NOW)
    async with session_factory.begin() as session:
        second = await PayoutService.handle_payout_failure(session, payout_item_id="PI-1", now_utc=NOW)

    assert first.outcome == "failed_affiliate_missing"
    assert first.refunded_amount is None
    assert second.outcome == "already_failed"
    async with session_factory() as session:
        payout = await session.get(Payout, requested.payout_id)
    assert payout is not None
    assert payout.status == "failed"
    assert payout.refunded_at is None
    assert await count_rows(session_factory, LedgerEntry, LedgerEntry.entry_type == "PAYOUT_REFUND") == 0


@pytest.mark.asyncio
async def test_success_then_failure_keeps_completed(session_factory) -> None:
    await _affiliate_with_balance(session_factory)
    await _submitted_payout(session_factory)

    async with session_factory.begin() as session:
        success = await PayoutService.handle_payout_success(session, payout_item_id="PI-1", now_utc=NOW)
    async with session_factory.begin() as session:
        late_failure = await PayoutService.handle_payout_failure(session, payout_item_id="PI-1", now_utc=NOW)
    async with session_factory.begin() as session:
        repeat_success = await PayoutService.handle_payout_success(session, payout_item_id="PI-1", now_utc=NOW)

    assert success.outcome == "completed"
    assert late_failure.outcome == "already_completed"
    assert repeat_success.outcome == "already_completed"
    affiliate = await load_user(session_factory, "aff_1")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("6.00")


@pytest.mark.asyncio
async def test_failure_then_success_keeps_failed(session_factory) -> None:
    await _affiliate_with_balance(session_factory)
    await _submitted_payout(session_factory)

    async with session_factory.begin() as session:
        await PayoutService.handle_payout_failure(session, payout_item_id="PI-1", now_utc=NOW)
    async with session_factory.begin() as session:
        late_success = await PayoutService.handle_payout_success(session, payout_item_id="PI-1", now_utc=NOW)

    assert late_success.outcome == "already_failed"
    affiliate = await load_user(session_factory, "aff_1")
    assert affiliate is not None
    assert affiliate.affiliate_balance == Decimal("10.00")


@pytest.mark.asyncio
async def test_events_for_unknown_payout_item_are_not_found(session_factory) -> None:
    async with session_factory() as session:
        success = await PayoutService.handle_payout_success(session, payout_item_id="PI-x", now_utc=NOW)
        failure = await PayoutService.handle_payout_failure(session, payout_item_id="PI-x", now_utc=NOW)

    assert success.outcome == "not_found"
    assert failure.outcome == "not_found"
