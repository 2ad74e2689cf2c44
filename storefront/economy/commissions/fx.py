from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog

from storefront.economy.commissions.errors import UnsupportedCurrencyError

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class ExchangeRates:
    """Units of each currency per one USD, captured on ``as_of``."""

    usd_rates: dict[str, Decimal] = field(default_factory=lambda: {"USD": Decimal("1")})
    as_of: date | None = None
    max_age_days: int = 30

    def is_stale(self, now_utc: datetime) -> bool:
        if self.as_of is None:
            return True
        return (now_utc.date() - self.as_of).days > self.max_age_days

    def convert(self, amount: Decimal, *, from_currency: str, to_currency: str, now_utc: datetime) -> Decimal:
        source = from_currency.upper()
        target = to_currency.upper()
        if source == target:
            return amount.quantize(CENT, rounding=ROUND_HALF_UP)

        source_rate = self.usd_rates.get(source)
        target_rate = self.usd_rates.get(target)
        if source_rate is None or target_rate is None:
            raise UnsupportedCurrencyError(f"{source}->{target}")

        if self.is_stale(now_utc):
            logger.warning(
                "fx_rate_stale",
                from_currency=source,
                to_currency=target,
                rates_as_of=self.as_of.isoformat() if self.as_of else None,
                max_age_days=self.max_age_days,
            )
        converted = amount / source_rate * target_rate
        return converted.quantize(CENT, rounding=ROUND_HALF_UP)


def build_exchange_rates(settings: object) -> ExchangeRates:
    usd_zar_rate = getattr(settings, "fx_usd_zar_rate", Decimal("18.00"))
    return ExchangeRates(
        usd_rates={"USD": Decimal("1"), "ZAR": Decimal(str(usd_zar_rate))},
        as_of=getattr(settings, "fx_rates_as_of", None),
        max_age_days=int(getattr(settings, "fx_max_age_days", 30)),
    )
