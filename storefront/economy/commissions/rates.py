from __future__ import annotations

from decimal import Decimal, InvalidOperation

import structlog

logger = structlog.get_logger(__name__)

SUBSCRIPTION_FLAT_RATES_USD: dict[str, Decimal] = {
    "insider": Decimal("1.00"),
    "gold": Decimal("2.00"),
    "deluxe": Decimal("3.00"),
}
DELUXE_MIN_TOTAL = Decimal("25")
GOLD_MIN_TOTAL = Decimal("12")


def parse_amount(raw: object) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def plan_type_from_total(total: Decimal) -> str:
    if total >= DELUXE_MIN_TOTAL:
        return "deluxe"
    if total >= GOLD_MIN_TOTAL:
        return "gold"
    return "insider"


def resolve_plan_type(*, explicit_plan: object, total: Decimal) -> str:
    """Prefers the plan named in the payload; the price ladder is a fallback.

    Inferring from the charged amount misfiles promotional prices and any
    future plan priced at a threshold, so every fallback is logged.
    """
    if isinstance(explicit_plan, str):
        normalized = explicit_plan.strip().lower()
        if normalized in SUBSCRIPTION_FLAT_RATES_USD:
            return normalized
    inferred = plan_type_from_total(total)
    logger.warning(
        "commission_plan_type_inferred_from_amount",
        amount_total=str(total),
        plan_type=inferred,
    )
    return inferred


def flat_subscription_rate(plan_type: str | None) -> Decimal:
    if plan_type is None:
        return Decimal("0")
    return SUBSCRIPTION_FLAT_RATES_USD.get(plan_type.strip().lower(), Decimal("0"))
