"""
models/expense.py — Expense table definition.

No business logic. No imports from services or routes.

Key design points:
  - `receipt_total` uses NUMERIC(10, 2) — never Float.
  - group_id and created_by are fixed at creation; no service reassigns them.
  - Splits are deleted explicitly by the expense service before the expense
    row itself. The ON DELETE CASCADE on splits.expense_id is only a backstop
    for direct database cleanup.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomledger.app.extensions import db
from roomledger.app.models.types import MONEY


class Expense(db.Model):
    __tablename__ = "expenses"

    __table_args__ = (
        # Also enforced by the marshmallow schema and the allocator.
        CheckConstraint("receipt_total > 0", name="ck_expenses_receipt_total_positive"),
        CheckConstraint(
            "LENGTH(TRIM(title)) > 0",
            name="ck_expenses_title_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Free-text label ("groceries", "utilities", ...). Not an enum.
    category: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    receipt_total: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
    )

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_by: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="expenses",
    )

    creator: Mapped["Tenant"] = relationship(  # noqa: F821
        "Tenant",
        foreign_keys=[created_by],
    )

    splits: Mapped[list["Split"]] = relationship(  # noqa: F821
        "Split",
        back_populates="expense",
        order_by="Split.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Expense id={self.id} "
            f"group_id={self.group_id} "
            f"receipt_total={self.receipt_total}>"
        )
