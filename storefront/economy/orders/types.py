from __future__ import annotations

from dataclasses import dataclass

from storefront.economy.commissions.types import CommissionResult


@dataclass(slots=True)
class OrderPaymentResult:
    order_id: str
    outcome: str
    commission: CommissionResult | None = None

    @property
    def idempotent_replay(self) -> bool:
        return self.outcome == "already_settled"
