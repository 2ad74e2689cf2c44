from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from storefront.economy.commissions.errors import UnsupportedCurrencyError
from storefront.economy.commissions.fx import ExchangeRates, build_exchange_rates
from storefront.economy.commissions.rates import (
    flat_subscription_rate,
    parse_amount,
    plan_type_from_total,
    resolve_plan_type,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("plan", "expected"),
    [("insider", "1.00"), ("Gold", "2.00"), (" deluxe ", "3.00"), ("platinum", "0"), (None, "0")],
)
def test_flat_subscription_rate(plan: str | None, expected: str) -> None:
    assert flat_subscription_rate(plan) == Decimal(expected)


def test_plan_type_ladder() -> None:
    assert plan_type_from_total(Decimal("0")) == "insider"
    assert plan_type_from_total(Decimal("12.00")) == "gold"
    assert plan_type_from_total(Decimal("25.00")) == "deluxe"


def test_resolve_plan_type_ignores_unknown_explicit_plan() -> None:
    assert resolve_plan_type(explicit_plan="platinum", total=Decimal("13")) == "gold"
    assert resolve_plan_type(explicit_plan="INSIDER", total=Decimal("30")) == "insider"


@pytest.mark.parametrize("raw", [None, True, "", "abc", "NaN", "Infinity"])
def test_parse_amount_rejects_garbage(raw: object) -> None:
    assert parse_amount(raw) is None


def test_parse_amount_accepts_numbers_and_strings() -> None:
    assert parse_amount(" 12.50 ") == Decimal("12.50")
    assert parse_amount(7) == Decimal("7")


def test_convert_zar_to_usd_rounds_half_up() -> None:
    rates = ExchangeRates(
        usd_rates={"USD": Decimal("1"), "ZAR": Decimal("18")},
        as_of=date(2026, 3, 1),
    )
    assert rates.convert(Decimal("50.00"), from_currency="ZAR", to_currency="USD", now_utc=NOW) == Decimal("2.78")
    assert rates.convert(Decimal("2.00"), from_currency="usd", to_currency="zar", now_utc=NOW) == Decimal("36.00")


def test_same_currency_is_quantized_only() -> None:
    rates = ExchangeRates()
    assert rates.convert(Decimal("1.005"), from_currency="USD", to_currency="USD", now_utc=NOW) == Decimal("1.01")


def test_unknown_currency_raises() -> None:
    rates = ExchangeRates()
    with pytest.raises(UnsupportedCurrencyError):
        rates.convert(Decimal("1"), from_currency="EUR", to_currency="USD", now_utc=NOW)


def test_staleness_is_relative_to_as_of() -> None:
    assert ExchangeRates(as_of=None).is_stale(NOW)
    assert not ExchangeRates(as_of=date(2026, 2, 1), max_age_days=30).is_stale(NOW)
    assert ExchangeRates(as_of=date(2026, 1, 1), max_age_days=30).is_stale(NOW)


def test_stale_rates_still_convert() -> None:
    rates = ExchangeRates(
        usd_rates={"USD": Decimal("1"), "ZAR": Decimal("20")},
        as_of=date(2025, 1, 1),
        max_age_days=1,
    )
    assert rates.convert(Decimal("20"), from_currency="ZAR", to_currency="USD", now_utc=NOW) == Decimal("1.00")


def test_build_exchange_rates_from_settings() -> None:
    settings = SimpleNamespace(
        fx_usd_zar_rate=Decimal("17.5"),
        fx_rates_as_of=date(2026, 2, 20),
        fx_max_age_days=14,
    )
    rates = build_exchange_rates(settings)
    assert rates.usd_rates == {"USD": Decimal("1"), "ZAR": Decimal("17.5")}
    assert rates.as_of == date(2026, 2, 20)
    assert rates.max_age_days == 14
