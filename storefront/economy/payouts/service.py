from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.ledger_entries import LedgerEntry
from storefront.db.models.payouts import Payout
from storefront.db.repo.ledger_repo import LedgerRepo
from storefront.db.repo.payouts_repo import PayoutsRepo
from storefront.db.repo.users_repo import UsersRepo
from storefront.economy.payouts.errors import (
    InsufficientBalanceError,
    InvalidPayoutAmountError,
    PayoutAffiliateNotFoundError,
    PayoutNotFoundError,
    PayoutStateConflictError,
)
from storefront.economy.payouts.types import PayoutRequestResult, PayoutTransitionResult

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def _sender_item_id(now_utc: datetime) -> str:
    return f"payout_{int(now_utc.timestamp() * 1000)}_{uuid4().hex[:8]}"


class PayoutService:
    @staticmethod
    async def request_payout(
        session: AsyncSession,
        *,
        affiliate_id: str,
        amount: Decimal,
        actor: str,
        now_utc: datetime,
    ) -> PayoutRequestResult:
        payout_amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
        if payout_amount <= 0:
            raise InvalidPayoutAmountError

        affiliate = await UsersRepo.get_by_id(session, affiliate_id)
        if affiliate is None or not affiliate.is_affiliate:
            raise PayoutAffiliateNotFoundError

        new_balance = await UsersRepo.debit_affiliate_balance(
            session,
            user_id=affiliate_id,
            amount=payout_amount,
            now_utc=now_utc,
        )
        if new_balance is None:
            raise InsufficientBalanceError

        payout = await PayoutsRepo.create(
            session,
            payout=Payout(
                affiliate_id=affiliate_id,
                sender_item_id=_sender_item_id(now_utc),
                recipient_email=affiliate.email,
                amount=payout_amount,
                currency=affiliate.affiliate_currency,
                status="pending",
                created_at=now_utc,
            ),
        )
        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=affiliate_id,
                entry_type="PAYOUT_DEBIT",
                asset="AFFILIATE_BALANCE",
                direction="DEBIT",
                amount=payout_amount,
                currency=payout.currency,
                balance_after=new_balance,
                source="PAYOUT",
                idempotency_key=f"payout_debit:{payout.id}",
                metadata_={"actor": actor, "sender_item_id": payout.sender_item_id},
                created_at=now_utc,
            ),
        )
        logger.info(
            "payout_requested",
            payout_id=str(payout.id),
            affiliate_id=affiliate_id,
            amount=str(payout_amount),
            currency=payout.currency,
            actor=actor,
        )
        return PayoutRequestResult(
            payout_id=payout.id,
            affiliate_id=affiliate_id,
            sender_item_id=payout.sender_item_id,
            amount=payout_amount,
            currency=payout.currency,
            affiliate_balance=new_balance,
        )

    @staticmethod
    async def mark_submitted(
        session: AsyncSession,
        *,
        payout_id: UUID,
        provider_payout_item_id: str,
        now_utc: datetime,
    ) -> PayoutTransitionResult:
        payout = await PayoutsRepo.get_by_id(session, payout_id)
        if payout is None:
            raise PayoutNotFoundError

        moved = await PayoutsRepo.mark_processing(
            session,
            payout_id=payout_id,
            provider_payout_item_id=provider_payout_item_id,
            now_utc=now_utc,
        )
        if moved:
            return PayoutTransitionResult(
                outcome="processing",
                payout_id=payout_id,
                affiliate_id=payout.affiliate_id,
            )

        if payout.status == "processing" and payout.provider_payout_item_id == provider_payout_item_id:
            return PayoutTransitionResult(
                outcome="already_processing",
                payout_id=payout_id,
                affiliate_id=payout.affiliate_id,
            )
        raise PayoutStateConflictError

    @staticmethod
    async def handle_payout_success(
        session: AsyncSession,
        *,
        payout_item_id: str,
        now_utc: datetime,
    ) -> PayoutTransitionResult:
        completed_id = await PayoutsRepo.mark_completed(
            session,
            provider_payout_item_id=payout_item_id,
            now_utc=now_utc,
        )
        if completed_id is not None:
            logger.info("payout_completed", payout_id=str(completed_id), payout_item_id=payout_item_id)
            return PayoutTransitionResult(outcome="completed", payout_id=completed_id)

        payout = await PayoutsRepo.get_by_provider_item_id(session, payout_item_id)
        if payout is None:
            logger.warning("payout_success_record_missing", payout_item_id=payout_item_id)
            return PayoutTransitionResult(outcome="not_found")

        if payout.status == "failed":
            logger.warning(
                "payout_success_after_failure_ignored",
                payout_id=str(payout.id),
                payout_item_id=payout_item_id,
            )
        return PayoutTransitionResult(
            outcome=f"already_{payout.status}",
            payout_id=payout.id,
            affiliate_id=payout.affiliate_id,
        )

    @staticmethod
    async def handle_payout_failure(
        session: AsyncSession,
        *,
        payout_item_id: str,
        now_utc: datetime,
    ) -> PayoutTransitionResult:
        """Marks the payout failed and gives the amount back to the affiliate.

        The refund is reachable only through the pending/processing -> failed
        transition and is additionally fenced by ``refunded_at`` and the
        ledger idempotency key, so repeated failure events refund once.
        """
        failed = await PayoutsRepo.mark_failed(
            session,
            provider_payout_item_id=payout_item_id,
            now_utc=now_utc,
        )
        if failed is None:
            payout = await PayoutsRepo.get_by_provider_item_id(session, payout_item_id)
            if payout is None:
                logger.warning("payout_failure_record_missing", payout_item_id=payout_item_id)
                return PayoutTransitionResult(outcome="not_found")
            if payout.status == "completed":
                logger.warning(
                    "payout_failure_after_completion_ignored",
                    payout_id=str(payout.id),
                    payout_item_id=payout_item_id,
                )
            return PayoutTransitionResult(
                outcome=f"already_{payout.status}",
                payout_id=payout.id,
                affiliate_id=payout.affiliate_id,
            )

        payout_id, affiliate_id, amount, currency = failed
        # refunded_at stays null when nobody can receive the money.
        affiliate = await UsersRepo.get_by_id_for_update(session, affiliate_id)
        if affiliate is None:
            logger.error(
                "payout_refund_affiliate_missing",
                payout_id=str(payout_id),
                affiliate_id=affiliate_id,
                amount=str(amount),
                currency=currency,
            )
            return PayoutTransitionResult(
                outcome="failed_affiliate_missing",
                payout_id=payout_id,
                affiliate_id=affiliate_id,
            )

        if not await PayoutsRepo.mark_refunded(session, payout_id=payout_id, now_utc=now_utc):
            return PayoutTransitionResult(
                outcome="already_failed",
                payout_id=payout_id,
                affiliate_id=affiliate_id,
            )

        new_balance = await UsersRepo.credit_affiliate_balance(
            session,
            user_id=affiliate_id,
            amount=amount,
            now_utc=now_utc,
        )
        if new_balance is None:
            raise PayoutAffiliateNotFoundError

        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=affiliate_id,
                entry_type="PAYOUT_REFUND",
                asset="AFFILIATE_BALANCE",
                direction="CREDIT",
                amount=amount,
                currency=currency,
                balance_after=new_balance,
                source="PAYOUT",
                idempotency_key=f"payout_refund:{payout_id}",
                metadata_={"payout_item_id": payout_item_id},
                created_at=now_utc,
            ),
        )
        logger.info(
            "payout_failed_refunded",
            payout_id=str(payout_id),
            affiliate_id=affiliate_id,
            amount=str(amount),
            currency=currency,
        )
        return PayoutTransitionResult(
            outcome="failed_refunded",
            payout_id=payout_id,
            affiliate_id=affiliate_id,
            refunded_amount=amount,
            affiliate_balance=new_balance,
        )
