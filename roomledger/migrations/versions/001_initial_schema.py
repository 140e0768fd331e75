"""Initial schema — ledger tables, enums, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-18

Append-only: never edit this file after it has been applied to a database.
Schema changes go into a new revision.

Creation order:
  1. PostgreSQL enum types (must exist before the tables that use them)
  2. Tables in FK dependency order (users → groups → tenants → expenses
     → splits → notifications)
  3. Indexes

ON DELETE policies:
  tenants.user_id              → CASCADE   (tenant record owned by its user)
  tenants.group_id             → SET NULL  (leaving a group keeps history)
  expenses.group_id            → CASCADE
  expenses.created_by          → CASCADE
  splits.expense_id            → CASCADE   (backstop; service deletes splits first)
  splits.assigned_to           → CASCADE
  splits.assigned_by           → SET NULL
  notifications.recipient_id   → CASCADE
  notifications.sender_id      → SET NULL
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _enum(name: str, *values: str) -> postgresql.ENUM:
    return postgresql.ENUM(*values, name=name, create_type=False)


def upgrade() -> None:
    # ── Step 1: PostgreSQL enum types ─────────────────────────────────────
    # Created with explicit SQL; the column types below use create_type=False.

    op.execute("CREATE TYPE user_role_enum AS ENUM ('admin', 'owner', 'tenant')")
    op.execute("CREATE TYPE split_status_enum AS ENUM ('unpaid', 'pending', 'paid')")
    op.execute(
        "CREATE TYPE notification_type_enum AS ENUM ('expense_created', 'split_paid')"
    )
    op.execute("CREATE TYPE related_entity_type_enum AS ENUM ('expense', 'split')")

    # ── Step 2: users ──────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone_no", sa.String(32), nullable=True),
        sa.Column(
            "role",
            _enum("user_role_enum", "admin", "owner", "tenant"),
            nullable=False,
            server_default="tenant",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("email LIKE '%@%'", name="ck_users_email_format"),
    )

    # ── Step 3: groups ─────────────────────────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_groups_name_nonempty"),
    )

    # ── Step 4: tenants ────────────────────────────────────────────────────

    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_tenants_user"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="SET NULL", name="fk_tenants_group"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_tenants"),
        sa.UniqueConstraint("user_id", name="uq_tenants_user"),
    )

    # ── Step 5: expenses ───────────────────────────────────────────────────

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("receipt_total", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_expenses_group"),
            nullable=False,
        ),
        sa.Column(
            "created_by",
            sa.Integer(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE", name="fk_expenses_creator"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_expenses"),
        sa.CheckConstraint(
            "receipt_total > 0",
            name="ck_expenses_receipt_total_positive",
        ),
        sa.CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_expenses_title_nonempty",
        ),
    )

    # ── Step 6: splits ─────────────────────────────────────────────────────
    # No UNIQUE(expense_id, assigned_to): direct creation may add a second
    # share for the same tenant.

    op.create_table(
        "splits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            _enum("split_status_enum", "unpaid", "pending", "paid"),
            nullable=False,
            server_default="unpaid",
        ),
        sa.Column("split_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "assigned_to",
            sa.Integer(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE", name="fk_splits_assigned_to"),
            nullable=False,
        ),
        sa.Column(
            "assigned_by",
            sa.Integer(),
            sa.ForeignKey("tenants.id", ondelete="SET NULL", name="fk_splits_assigned_by"),
            nullable=True,
        ),
        sa.Column("paid_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "expense_id",
            sa.Integer(),
            sa.ForeignKey("expenses.id", ondelete="CASCADE", name="fk_splits_expense"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_splits"),
        sa.CheckConstraint("split_amount > 0", name="ck_splits_amount_positive"),
    )

    # ── Step 7: notifications ──────────────────────────────────────────────

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "type",
            _enum("notification_type_enum", "expense_created", "split_paid"),
            nullable=False,
        ),
        sa.Column(
            "recipient_id",
            sa.Integer(),
            sa.ForeignKey(
                "tenants.id", ondelete="CASCADE", name="fk_notifications_recipient"
            ),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            sa.Integer(),
            sa.ForeignKey(
                "tenants.id", ondelete="SET NULL", name="fk_notifications_sender"
            ),
            nullable=True,
        ),
        sa.Column(
            "is_read",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "related_entity_type",
            _enum("related_entity_type_enum", "expense", "split"),
            nullable=True,
        ),
        sa.Column("related_entity_id", sa.Integer(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_notifications"),
    )

    # ── Step 8: Indexes ────────────────────────────────────────────────────
    # Names follow SQLAlchemy's ix_<table>_<column> so autogenerate stays quiet.

    op.create_index("ix_tenants_group_id", "tenants", ["group_id"])
    op.create_index("ix_expenses_group_id", "expenses", ["group_id"])
    op.create_index("ix_expenses_category", "expenses", ["category"])
    op.create_index("ix_splits_expense_id", "splits", ["expense_id"])
    op.create_index("ix_splits_assigned_to", "splits", ["assigned_to"])
    op.create_index("ix_splits_assigned_by", "splits", ["assigned_by"])
    op.create_index("ix_notifications_type", "notifications", ["type"])
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])


def downgrade() -> None:
    """Local development reset only. Production rolls forward."""
    op.drop_index("ix_notifications_recipient_id", table_name="notifications")
    op.drop_index("ix_notifications_type",         table_name="notifications")
    op.drop_index("ix_splits_assigned_by",         table_name="splits")
    op.drop_index("ix_splits_assigned_to",         table_name="splits")
    op.drop_index("ix_splits_expense_id",          table_name="splits")
    op.drop_index("ix_expenses_category",          table_name="expenses")
    op.drop_index("ix_expenses_group_id",          table_name="expenses")
    op.drop_index("ix_tenants_group_id",           table_name="tenants")

    op.drop_table("notifications")
    op.drop_table("splits")
    op.drop_table("expenses")
    op.drop_table("tenants")
    op.drop_table("groups")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS related_entity_type_enum")
    op.execute("DROP TYPE IF EXISTS notification_type_enum")
    op.execute("DROP TYPE IF EXISTS split_status_enum")
    op.execute("DROP TYPE IF EXISTS user_role_enum")
