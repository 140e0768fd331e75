"""
models/split.py — Split table definition.

One participant's share of an expense. No business logic here.

Key design points:
  - `split_amount` uses NUMERIC(10, 2) — never Float.
  - `paid_date` is non-null exactly when status is 'paid'. The database does
    not enforce this; split_service.py does.
  - assigned_to ON DELETE CASCADE, assigned_by ON DELETE SET NULL.
  - sum(split_amount) == expense.receipt_total holds at creation time only.
    Later edits to a single split or to the expense total are not reconciled.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomledger.app.extensions import db
from roomledger.app.models.types import MONEY, enum_values


class SplitStatus(str, enum.Enum):
    UNPAID  = "unpaid"
    PENDING = "pending"
    PAID    = "paid"


# Statuses that still represent money owed.
OPEN_STATUSES = (SplitStatus.UNPAID, SplitStatus.PENDING)


class Split(db.Model):
    __tablename__ = "splits"

    __table_args__ = (
        CheckConstraint("split_amount > 0", name="ck_splits_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    status: Mapped[SplitStatus] = mapped_column(
        Enum(
            SplitStatus,
            name="split_status_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        default=SplitStatus.UNPAID,
        server_default=SplitStatus.UNPAID.value,
    )

    split_amount: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
    )

    # Tenant who owes this share.
    assigned_to: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Tenant who is owed. Defaults to the expense creator.
    assigned_by: Mapped[int | None] = mapped_column(
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    paid_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    expense_id: Mapped[int] = mapped_column(
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
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

    expense: Mapped["Expense"] = relationship(  # noqa: F821
        "Expense",
        back_populates="splits",
    )

    assigned_tenant: Mapped["Tenant"] = relationship(  # noqa: F821
        "Tenant",
        foreign_keys=[assigned_to],
    )

    assigned_by_tenant: Mapped["Tenant"] = relationship(  # noqa: F821
        "Tenant",
        foreign_keys=[assigned_by],
    )

    @property
    def is_paid(self) -> bool:
        return self.status == SplitStatus.PAID

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Split id={self.id} "
            f"expense_id={self.expense_id} "
            f"assigned_to={self.assigned_to} "
            f"status={self.status} "
            f"split_amount={self.split_amount}>"
        )
