from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.models.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("status IN ('active','deleted')", name="ck_users_status"),
        CheckConstraint(
            "membership_status IN ('none','trial','active','grace_period','cancelled_pending','expired')",
            name="ck_users_membership_status",
        ),
        CheckConstraint("affiliate_balance >= 0", name="ck_users_affiliate_balance_non_negative"),
        CheckConstraint("store_credit >= 0", name="ck_users_store_credit_non_negative"),
        Index("idx_users_email", "email"),
        Index("idx_users_referrer", "referrer_id"),
        Index("idx_users_membership_status_tier", "membership_status", "membership_tier"),
        Index("idx_users_trial_expires", "trial_expires_at"),
        Index("idx_users_next_credit_drop", "next_credit_drop_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="active", server_default=text("'active'")
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    membership_status: Mapped[str] = mapped_column(
        String(24), nullable=False, default="none", server_default=text("'none'")
    )
    membership_tier: Mapped[str | None] = mapped_column(String(64), nullable=True)
    membership_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_payment_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    vault_access_locked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    cancelled_subscription_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    subscription_cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    vault_ladder_reset_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    trial_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    credit_currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="ZAR", server_default=text("'ZAR'")
    )
    store_credit: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default=text("0")
    )
    next_credit_drop_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    is_affiliate: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    affiliate_code: Mapped[str | None] = mapped_column(String(16), unique=True, nullable=True)
    affiliate_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    affiliate_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default=text("0")
    )
    affiliate_currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD", server_default=text("'USD'")
    )
    last_commission_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    referrer_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
