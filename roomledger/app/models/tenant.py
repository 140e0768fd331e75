"""
models/tenant.py — Tenant table definition.

A tenant is the renter-role projection of a user. Splits and expenses point
at tenants, never at users directly.

FK policy:
  user_id  ON DELETE CASCADE   — the tenant record is owned by its user.
  group_id ON DELETE SET NULL  — leaving a group keeps the ledger history.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomledger.app.extensions import db


class Tenant(db.Model):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(primary_key=True)

    # UNIQUE: one tenant record per user.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
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

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="tenant",
    )

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="tenants",
    )

    @property
    def display_name(self) -> str:
        """Name used in notification messages."""
        if self.user is not None:
            return self.user.full_name
        return f"Tenant {self.id}"

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Tenant id={self.id} "
            f"user_id={self.user_id} "
            f"group_id={self.group_id}>"
        )
