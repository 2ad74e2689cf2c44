from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class MonthlyCredit:
    amount: Decimal
    currency: str


MONTHLY_CREDITS: dict[str, MonthlyCredit] = {
    "Spoil Me": MonthlyCredit(amount=Decimal("25"), currency="ZAR"),
    "Basic": MonthlyCredit(amount=Decimal("50"), currency="ZAR"),
    "Premium": MonthlyCredit(amount=Decimal("100"), currency="ZAR"),
    "Deluxe Vault": MonthlyCredit(amount=Decimal("150"), currency="ZAR"),
    "Deluxe Boss": MonthlyCredit(amount=Decimal("150"), currency="ZAR"),
    "Insider Club": MonthlyCredit(amount=Decimal("5"), currency="USD"),
    "Gold Member": MonthlyCredit(amount=Decimal("12"), currency="USD"),
    "Deluxe": MonthlyCredit(amount=Decimal("15"), currency="USD"),
}

CURRENCY_SYMBOLS = {"USD": "$", "ZAR": "R"}


def get_monthly_credit(tier: str | None) -> MonthlyCredit | None:
    if not tier:
        return None
    return MONTHLY_CREDITS.get(tier.strip())


def trial_credit_currency(plan: str) -> str:
    """Dollar-priced plans are labelled with USD or $ in their display name."""
    return "USD" if "USD" in plan or "$" in plan else "ZAR"


def format_credit(amount: Decimal, currency: str) -> str:
    return f"{CURRENCY_SYMBOLS.get(currency, currency + ' ')}{amount}"
