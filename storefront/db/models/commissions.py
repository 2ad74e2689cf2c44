from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.models.base import Base


class Commission(Base):
    """Append-only record of one affiliate credit.

    Affiliate and referred user ids are plain strings so commission history
    outlives a hard-deleted account.
    """

    __tablename__ = "commissions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_commissions_amount_positive"),
        CheckConstraint("credited_amount > 0", name="ck_commissions_credited_amount_positive"),
        CheckConstraint(
            "commission_type IN ('subscription','vip_store')",
            name="ck_commissions_type",
        ),
        CheckConstraint("status IN ('completed')", name="ck_commissions_status"),
        Index("idx_commissions_affiliate_created", "affiliate_id", "created_at"),
        Index("idx_commissions_referred_user", "referred_user_id"),
        Index("idx_commissions_order", "order_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    affiliate_id: Mapped[str] = mapped_column(String(64), nullable=False)
    referred_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    credited_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    credited_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    commission_type: Mapped[str] = mapped_column(String(16), nullable=False)
    plan_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    commission_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    order_id: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="completed")
    idempotency_key: Mapped[str] = mapped_column(String(160), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
