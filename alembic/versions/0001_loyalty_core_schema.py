"""loyalty_core_schema

Revision ID: 0001_loyalty_core
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001_loyalty_core"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("ref_parent_id", sa.String(64), nullable=True),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["ref_parent_id"], ["users.id"]),
    )
    op.create_index("idx_users_ref_parent", "users", ["ref_parent_id"])
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "balances",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("petals", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("spin_credits", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_spin_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("petals >= 0", name="ck_balances_petals_non_negative"),
        sa.CheckConstraint("spin_credits IN (0, 1)", name="ck_balances_spin_credits_range"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("metadata", JSON_DOCUMENT, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "kind IN ('PROMO_ACTIVATION','WHEEL_WIN','REFERRAL_BONUS',"
            "'SOCIAL_ACTIVITY','REWARD_EXCHANGE','ADMIN_ADJUSTMENT')",
            name="ck_transactions_kind",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_transactions_user_created", "transactions", ["user_id", "created_at"])
    op.create_index(
        "idx_transactions_user_kind_created",
        "transactions",
        ["user_id", "kind", "created_at"],
    )

    op.create_table(
        "redemption_codes",
        sa.Column("code", sa.String(32), primary_key=True),
        sa.Column("code_type", sa.String(16), nullable=False),
        sa.Column("petals_delta", sa.Integer(), nullable=False),
        sa.Column("spin_credit", sa.SmallInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("labels", JSON_DOCUMENT, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("single_use", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("bound_user_id", sa.String(64), nullable=True),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checksum", sa.CHAR(2), nullable=False),
        sa.Column("created_by", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("code_type IN ('ORDER','SOCIAL','REWARD')", name="ck_redemption_codes_type"),
        sa.CheckConstraint("spin_credit IN (0, 1)", name="ck_redemption_codes_spin_credit"),
        sa.CheckConstraint(
            "(is_used = false AND used_at IS NULL) OR (is_used = true AND used_at IS NOT NULL)",
            name="ck_redemption_codes_used_consistency",
        ),
        sa.ForeignKeyConstraint(["bound_user_id"], ["users.id"]),
    )
    op.create_index("idx_redemption_codes_bound_user", "redemption_codes", ["bound_user_id"])
    op.create_index(
        "idx_redemption_codes_type_created",
        "redemption_codes",
        ["code_type", "created_at"],
    )
    op.create_index("idx_redemption_codes_expires_at", "redemption_codes", ["expires_at"])

    op.create_table(
        "referrals",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True, autoincrement=True),
        sa.Column("inviter_id", sa.String(64), nullable=False),
        sa.Column("invitee_id", sa.String(64), nullable=False),
        sa.Column("first_order_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_order_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("bonus_paid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("inviter_id <> invitee_id", name="ck_referrals_no_self_referral"),
        sa.CheckConstraint(
            "bonus_paid = false OR first_order_confirmed_at IS NOT NULL",
            name="ck_referrals_bonus_requires_confirmation",
        ),
        sa.ForeignKeyConstraint(["inviter_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["invitee_id"], ["users.id"]),
        sa.UniqueConstraint("invitee_id", name="uq_referrals_invitee_id"),
    )
    op.create_index("idx_referrals_inviter_created", "referrals", ["inviter_id", "created_at"])
    op.create_index(
        "idx_referrals_inviter_confirmed",
        "referrals",
        ["inviter_id", "first_order_confirmed_at"],
    )

    op.create_table(
        "config",
        sa.Column("key", sa.String(64), primary_key=True),
        sa.Column("value", JSON_DOCUMENT, nullable=False),
        sa.Column("updated_by", sa.String(64), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    if op.get_bind().dialect.name != "postgresql":
        return

    op.execute(
        """
        CREATE OR REPLACE FUNCTION fn_transactions_append_only()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            RAISE EXCEPTION 'transactions is append-only';
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_transactions_append_only
        BEFORE UPDATE OR DELETE ON transactions
        FOR EACH ROW
        EXECUTE FUNCTION fn_transactions_append_only();
        """
    )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TRIGGER IF EXISTS trg_transactions_append_only ON transactions;")
        op.execute("DROP FUNCTION IF EXISTS fn_transactions_append_only();")

    op.drop_table("config")
    op.drop_index("idx_referrals_inviter_confirmed", table_name="referrals")
    op.drop_index("idx_referrals_inviter_created", table_name="referrals")
    op.drop_table("referrals")
    op.drop_index("idx_redemption_codes_expires_at", table_name="redemption_codes")
    op.drop_index("idx_redemption_codes_type_created", table_name="redemption_codes")
    op.drop_index("idx_redemption_codes_bound_user", table_name="redemption_codes")
    op.drop_table("redemption_codes")
    op.drop_index("idx_transactions_user_kind_created", table_name="transactions")
    op.drop_index("idx_transactions_user_created", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("balances")
    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_index("idx_users_ref_parent", table_name="users")
    op.drop_table("users")
