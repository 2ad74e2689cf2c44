from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(slots=True)
class PayoutRequestResult:
    payout_id: UUID
    affiliate_id: str
    sender_item_id: str
    amount: Decimal
    currency: str
    affiliate_balance: Decimal


@dataclass(slots=True)
class PayoutTransitionResult:
    outcome: str
    payout_id: UUID | None = None
    affiliate_id: str | None = None
    refunded_amount: Decimal | None = None
    affiliate_balance: Decimal | None = None

    @property
    def idempotent_replay(self) -> bool:
        return self.outcome in {"already_completed", "already_failed"}
