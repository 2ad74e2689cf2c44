from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(slots=True)
class MembershipUpdateResult:
    user_id: str
    membership_status: str
    membership_expiry: datetime | None
    applied: bool
    idempotent_replay: bool = False


@dataclass(slots=True)
class TrialGrantResult:
    user_id: str
    plan: str
    trial_expires_at: datetime
    credit_currency: str


@dataclass(slots=True)
class StoreCreditAdjustmentResult:
    user_id: str
    delta: Decimal
    store_credit: Decimal
    idempotent_replay: bool
