"""ledger_core_schema

Revision ID: 5c1e7a90b2d4
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5c1e7a90b2d4"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'active'")),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("membership_status", sa.String(24), nullable=False, server_default=sa.text("'none'")),
        sa.Column("membership_tier", sa.String(64), nullable=True),
        sa.Column("membership_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_payment_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("vault_access_locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cancelled_subscription_id", sa.String(64), nullable=True),
        sa.Column("subscription_cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("vault_ladder_reset_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("credit_currency", sa.String(3), nullable=False, server_default=sa.text("'ZAR'")),
        sa.Column("store_credit", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("next_credit_drop_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_affiliate", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("affiliate_code", sa.String(16), nullable=True),
        sa.Column("affiliate_status", sa.String(16), nullable=True),
        sa.Column("affiliate_balance", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("affiliate_currency", sa.String(3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("last_commission_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("referrer_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('active','deleted')", name="ck_users_status"),
        sa.CheckConstraint(
            "membership_status IN ('none','trial','active','grace_period','cancelled_pending','expired')",
            name="ck_users_membership_status",
        ),
        sa.CheckConstraint("affiliate_balance >= 0", name="ck_users_affiliate_balance_non_negative"),
        sa.CheckConstraint("store_credit >= 0", name="ck_users_store_credit_non_negative"),
        sa.ForeignKeyConstraint(["referrer_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("affiliate_code", name="uq_users_affiliate_code"),
    )
    op.create_index("idx_users_email", "users", ["email"])
    op.create_index("idx_users_referrer", "users", ["referrer_id"])
    op.create_index("idx_users_membership_status_tier", "users", ["membership_status", "membership_tier"])
    op.create_index("idx_users_trial_expires", "users", ["trial_expires_at"])
    op.create_index("idx_users_next_credit_drop", "users", ["next_credit_drop_at"])

    op.create_table(
        "commissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("affiliate_id", sa.String(64), nullable=False),
        sa.Column("referred_user_id", sa.String(64), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("credited_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("credited_currency", sa.String(3), nullable=False),
        sa.Column("commission_type", sa.String(16), nullable=False),
        sa.Column("plan_type", sa.String(32), nullable=True),
        sa.Column("commission_percent", sa.Numeric(5, 2), nullable=True),
        sa.Column("order_id", sa.String(128), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("idempotency_key", sa.String(160), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_commissions_amount_positive"),
        sa.CheckConstraint("credited_amount > 0", name="ck_commissions_credited_amount_positive"),
        sa.CheckConstraint("commission_type IN ('subscription','vip_store')", name="ck_commissions_type"),
        sa.CheckConstraint("status IN ('completed')", name="ck_commissions_status"),
        sa.UniqueConstraint("idempotency_key", name="uq_commissions_idempotency_key"),
    )
    op.create_index("idx_commissions_affiliate_created", "commissions", ["affiliate_id", "created_at"])
    op.create_index("idx_commissions_referred_user", "commissions", ["referred_user_id"])
    op.create_index("idx_commissions_order", "commissions", ["order_id"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("entry_type", sa.String(32), nullable=False),
        sa.Column("asset", sa.String(32), nullable=False),
        sa.Column("direction", sa.String(8), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=True),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("idempotency_key", sa.String(160), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
        sa.CheckConstraint("asset IN ('AFFILIATE_BALANCE','STORE_CREDIT')", name="ck_ledger_entries_asset"),
        sa.CheckConstraint("direction IN ('CREDIT','DEBIT')", name="ck_ledger_entries_direction"),
        sa.UniqueConstraint("idempotency_key", name="uq_ledger_entries_idempotency_key"),
    )
    op.create_index("idx_ledger_user_created", "ledger_entries", ["user_id", "created_at"])
    op.create_index("idx_ledger_type", "ledger_entries", ["entry_type"])

    op.create_table(
        "payouts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("affiliate_id", sa.String(64), nullable=False),
        sa.Column("sender_item_id", sa.String(64), nullable=False),
        sa.Column("provider_payout_item_id", sa.String(64), nullable=True),
        sa.Column("recipient_email", sa.String(320), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processing_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_payouts_amount_positive"),
        sa.CheckConstraint(
            "status IN ('pending','processing','completed','failed')",
            name="ck_payouts_status",
        ),
        sa.UniqueConstraint("sender_item_id", name="uq_payouts_sender_item_id"),
        sa.UniqueConstraint("provider_payout_item_id", name="uq_payouts_provider_payout_item_id"),
    )
    op.create_index("idx_payouts_affiliate_created", "payouts", ["affiliate_id", "created_at"])
    op.create_index("idx_payouts_status", "payouts", ["status"])

    op.create_table(
        "affiliate_applications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("pitch", sa.Text(), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("auto_approve_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(320), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("affiliate_code", sa.String(16), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending','approved','rejected')",
            name="ck_affiliate_applications_status",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_affiliate_applications_due", "affiliate_applications", ["status", "auto_approve_at"])
    op.create_index(
        "uq_affiliate_applications_user_pending",
        "affiliate_applications",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(160), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", sa.String(32), nullable=False),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])

    op.create_table(
        "processed_webhook_events",
        sa.Column("provider", sa.String(16), nullable=False),
        sa.Column("dedup_key", sa.String(128), nullable=False),
        sa.Column("event_type", sa.String(96), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("outcome", sa.String(64), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("provider", "dedup_key", name="pk_processed_webhook_events"),
        sa.CheckConstraint("provider IN ('paypal','payfast')", name="ck_processed_webhook_events_provider"),
        sa.CheckConstraint(
            "status IN ('DONE','FAILED','REVIEW')",
            name="ck_processed_webhook_events_status",
        ),
    )
    op.create_index(
        "idx_processed_webhook_events_status_seen",
        "processed_webhook_events",
        ["status", "first_seen_at"],
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("meta", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("provider_payment_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('pending','processing','cancelled')", name="ck_orders_status"),
        sa.CheckConstraint("total >= 0", name="ck_orders_total_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_orders_user_created", "orders", ["user_id", "created_at"])

    op.create_table(
        "products",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("artist_id", sa.String(64), nullable=True),
        sa.Column("is_promoted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("promoted_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_products_promoted_until", "products", ["is_promoted", "promoted_until"])

    op.create_table(
        "push_tokens",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("platform", sa.String(16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token", name="uq_push_tokens_token"),
    )
    op.create_index("idx_push_tokens_user", "push_tokens", ["user_id"])

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('PENDING','SENT','FAILED','SKIPPED')",
            name="ck_outbox_events_status",
        ),
    )
    op.create_index("idx_outbox_events_type_status", "outbox_events", ["event_type", "status", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_outbox_events_type_status", table_name="outbox_events")
    op.drop_table("outbox_events")
    op.drop_index("idx_push_tokens_user", table_name="push_tokens")
    op.drop_table("push_tokens")
    op.drop_index("idx_products_promoted_until", table_name="products")
    op.drop_table("products")
    op.drop_index("idx_orders_user_created", table_name="orders")
    op.drop_table("orders")
    op.drop_index("idx_processed_webhook_events_status_seen", table_name="processed_webhook_events")
    op.drop_table("processed_webhook_events")
    op.drop_index("idx_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("uq_affiliate_applications_user_pending", table_name="affiliate_applications")
    op.drop_index("idx_affiliate_applications_due", table_name="affiliate_applications")
    op.drop_table("affiliate_applications")
    op.drop_index("idx_payouts_status", table_name="payouts")
    op.drop_index("idx_payouts_affiliate_created", table_name="payouts")
    op.drop_table("payouts")
    op.drop_index("idx_ledger_type", table_name="ledger_entries")
    op.drop_index("idx_ledger_user_created", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_index("idx_commissions_order", table_name="commissions")
    op.drop_index("idx_commissions_referred_user", table_name="commissions")
    op.drop_index("idx_commissions_affiliate_created", table_name="commissions")
    op.drop_table("commissions")
    op.drop_index("idx_users_next_credit_drop", table_name="users")
    op.drop_index("idx_users_trial_expires", table_name="users")
    op.drop_index("idx_users_membership_status_tier", table_name="users")
    op.drop_index("idx_users_referrer", table_name="users")
    op.drop_index("idx_users_email", table_name="users")
    op.drop_table("users")
