from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class BroadcastResult:
    target_type: str
    user_count: int
    device_count: int
    outbox_event_id: int
