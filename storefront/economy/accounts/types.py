from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class AccountDeletionResult:
    user_id: str
    mode: str
    idempotent_replay: bool
    removed: dict[str, int] = field(default_factory=dict)
