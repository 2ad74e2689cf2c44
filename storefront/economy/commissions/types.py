from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True, slots=True)
class StoreReferral:
    commission_percent: Decimal
    order_total: Decimal
    customer_currency: str


@dataclass(slots=True)
class CommissionResult:
    outcome: str
    affiliate_id: str | None = None
    commission_id: UUID | None = None
    amount: Decimal | None = None
    currency: str | None = None
    credited_amount: Decimal | None = None
    credited_currency: str | None = None
    affiliate_balance: Decimal | None = None

    @property
    def idempotent_replay(self) -> bool:
        return self.outcome == "duplicate"
