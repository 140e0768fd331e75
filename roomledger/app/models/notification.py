"""
models/notification.py — Notification table definition.

Written only by PersistentDispatch (services/notification_service.py).
The ledger services never read this table.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roomledger.app.extensions import db
from roomledger.app.models.types import enum_values


class NotificationType(str, enum.Enum):
    EXPENSE_CREATED = "expense_created"
    SPLIT_PAID      = "split_paid"


class RelatedEntityType(str, enum.Enum):
    EXPENSE = "expense"
    SPLIT   = "split"


class Notification(db.Model):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)

    message: Mapped[str] = mapped_column(Text, nullable=False)

    type: Mapped[NotificationType] = mapped_column(
        Enum(
            NotificationType,
            name="notification_type_enum",
            values_callable=enum_values,
        ),
        nullable=False,
        index=True,
    )

    recipient_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    sender_id: Mapped[int | None] = mapped_column(
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    related_entity_type: Mapped[RelatedEntityType | None] = mapped_column(
        Enum(
            RelatedEntityType,
            name="related_entity_type_enum",
            values_callable=enum_values,
        ),
        nullable=True,
    )

    related_entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    recipient: Mapped["Tenant"] = relationship(  # noqa: F821
        "Tenant",
        foreign_keys=[recipient_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Notification id={self.id} "
            f"type={self.type} "
            f"recipient_id={self.recipient_id}>"
        )
