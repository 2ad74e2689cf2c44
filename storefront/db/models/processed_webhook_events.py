from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, PrimaryKeyConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.models.base import Base, JSONPayload


class ProcessedWebhookEvent(Base):
    __tablename__ = "processed_webhook_events"
    __table_args__ = (
        PrimaryKeyConstraint("provider", "dedup_key", name="pk_processed_webhook_events"),
        CheckConstraint("provider IN ('paypal','payfast')", name="ck_processed_webhook_events_provider"),
        CheckConstraint(
            "status IN ('DONE','FAILED','REVIEW')",
            name="ck_processed_webhook_events_status",
        ),
        Index("idx_processed_webhook_events_status_seen", "status", "first_seen_at"),
    )

    provider: Mapped[str] = mapped_column(String(16), nullable=False)
    dedup_key: Mapped[str] = mapped_column(String(128), nullable=False)
    event_type: Mapped[str] = mapped_column(String(96), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    outcome: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict[str, object] | None] = mapped_column(JSONPayload, nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
