from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(slots=True)
class ApplicationSubmitResult:
    application_id: UUID
    status: str
    auto_approve_at: datetime
    idempotent_replay: bool


@dataclass(slots=True)
class ApplicationDecisionResult:
    application_id: UUID
    user_id: str
    status: str
    affiliate_code: str | None
    idempotent_replay: bool
