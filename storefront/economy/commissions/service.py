from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.ledger_entries import LedgerEntry
from storefront.db.repo.commissions_repo import CommissionsRepo
from storefront.db.repo.ledger_repo import LedgerRepo
from storefront.db.repo.users_repo import UsersRepo
from storefront.economy.commissions.errors import (
    CommissionError,
    CommissionNotPayableError,
    CommissionUserNotFoundError,
    InvalidReferralMetadataError,
    UnsupportedCurrencyError,
)
from storefront.economy.commissions.fx import ExchangeRates
from storefront.economy.commissions.rates import flat_subscription_rate, parse_amount
from storefront.economy.commissions.types import CommissionResult, StoreReferral

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")
SUBSCRIPTION_CURRENCY = "USD"
DEFAULT_CUSTOMER_CURRENCY = "ZAR"


def parse_store_referral(
    meta: Mapping[str, object] | None,
    *,
    order_total: Decimal,
    customer_currency: str | None,
) -> StoreReferral | None:
    """Reads the referral block attached to a storefront order, if any."""
    if not meta:
        return None
    referral = meta.get("affiliate_referral") or meta.get("affiliateReferral")
    if not isinstance(referral, Mapping):
        return None

    raw_percent = referral.get("commission_percent", referral.get("commissionPercent"))
    percent = parse_amount(raw_percent)
    if percent is None or percent < 0 or percent > 100:
        raise InvalidReferralMetadataError
    return StoreReferral(
        commission_percent=percent,
        order_total=order_total,
        customer_currency=(customer_currency or DEFAULT_CUSTOMER_CURRENCY).upper(),
    )


class CommissionService:
    @staticmethod
    async def process_affiliate_commission(
        session: AsyncSession,
        *,
        user_id: str,
        order_id: str,
        source: str,
        now_utc: datetime,
        fx_rates: ExchangeRates,
        plan_type: str | None = None,
        store_referral: StoreReferral | None = None,
    ) -> CommissionResult:
        """Credits the paying user's referrer once per source order.

        The commission row insert is the idempotency gate: the balance credit
        and its ledger entry only happen when that insert wins, and all three
        share the caller's transaction.
        """
        user = await UsersRepo.get_by_id(session, user_id)
        if user is None:
            raise CommissionUserNotFoundError

        referrer_id = user.referrer_id
        if not referrer_id:
            return CommissionResult(outcome="no_referrer")

        referrer = await UsersRepo.get_by_id(session, referrer_id)
        if referrer is None:
            logger.warning(
                "commission_referrer_missing",
                user_id=user_id,
                referrer_id=referrer_id,
                order_id=order_id,
            )
            return CommissionResult(outcome="referrer_missing", affiliate_id=referrer_id)

        payout_currency = referrer.affiliate_currency
        if store_referral is not None:
            commission_type = "vip_store"
            commission_percent: Decimal | None = store_referral.commission_percent
            amount = (store_referral.order_total * store_referral.commission_percent / 100).quantize(
                CENT, rounding=ROUND_HALF_UP
            )
            currency = store_referral.customer_currency
            resolved_plan_type = None
        else:
            commission_type = "subscription"
            commission_percent = None
            amount = flat_subscription_rate(plan_type)
            currency = SUBSCRIPTION_CURRENCY
            resolved_plan_type = plan_type

        if amount <= 0:
            return CommissionResult(outcome="zero_amount", affiliate_id=referrer_id)

        credited_amount = fx_rates.convert(
            amount,
            from_currency=currency,
            to_currency=payout_currency,
            now_utc=now_utc,
        )
        if credited_amount <= 0:
            return CommissionResult(outcome="zero_amount", affiliate_id=referrer_id)

        commission_id = await CommissionsRepo.create_if_absent(
            session,
            affiliate_id=referrer_id,
            referred_user_id=user_id,
            amount=amount,
            currency=currency,
            credited_amount=credited_amount,
            credited_currency=payout_currency,
            commission_type=commission_type,
            plan_type=resolved_plan_type,
            commission_percent=commission_percent,
            order_id=order_id,
            idempotency_key=f"commission:{source}:{order_id}",
            created_at=now_utc,
        )
        if commission_id is None:
            logger.info(
                "commission_duplicate_order_skipped",
                affiliate_id=referrer_id,
                order_id=order_id,
                source=source,
            )
            return CommissionResult(outcome="duplicate", affiliate_id=referrer_id)

        new_balance = await UsersRepo.credit_affiliate_balance(
            session,
            user_id=referrer_id,
            amount=credited_amount,
            now_utc=now_utc,
            stamp_commission=True,
        )
        if new_balance is None:
            raise CommissionError("referrer vanished while crediting")

        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=referrer_id,
                entry_type="COMMISSION_CREDIT",
                asset="AFFILIATE_BALANCE",
                direction="CREDIT",
                amount=credited_amount,
                currency=payout_currency,
                balance_after=new_balance,
                source=commission_type.upper(),
                idempotency_key=f"commission:{commission_id}",
                metadata_={
                    "order_id": order_id,
                    "referred_user_id": user_id,
                    "earned_amount": str(amount),
                    "earned_currency": currency,
                },
                created_at=now_utc,
            ),
        )
        logger.info(
            "commission_credited",
            affiliate_id=referrer_id,
            referred_user_id=user_id,
            order_id=order_id,
            commission_type=commission_type,
            amount=str(amount),
            currency=currency,
            credited_amount=str(credited_amount),
            credited_currency=payout_currency,
        )
        return CommissionResult(
            outcome="credited",
            affiliate_id=referrer_id,
            commission_id=commission_id,
            amount=amount,
            currency=currency,
            credited_amount=credited_amount,
            credited_currency=payout_currency,
            affiliate_balance=new_balance,
        )


SKIP_REASONS: dict[type[CommissionNotPayableError], str] = {
    UnsupportedCurrencyError: "unsupported_currency",
    InvalidReferralMetadataError: "invalid_referral",
}


def skipped_commission(exc: CommissionNotPayableError, *, order_id: str, source: str) -> CommissionResult:
    """The payment itself stands; only the affiliate credit is dropped."""
    reason = SKIP_REASONS.get(type(exc), "not_payable")
    logger.warning(
        "commission_skipped",
        order_id=order_id,
        source=source,
        reason=reason,
        error_type=type(exc).__name__,
        detail=str(exc) or None,
    )
    return CommissionResult(outcome=f"skipped_{reason}")
