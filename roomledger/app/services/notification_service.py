"""
services/notification_service.py — Notification Dispatch boundary.

The ledger services hand structured events to a NotificationDispatch and
never look at the outcome. Storage and real-time delivery are the
dispatcher's business; a dispatcher that fails raises NotificationError,
which the calling service logs and swallows.

Backends:
  LoggingDispatch     — writes each event to the application log.
  PersistentDispatch  — stores one notifications row per recipient in its own
                        transaction, then logs delivery.

Event builders (expense_created_event, split_paid_event) are pure and are
unit tested without a database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roomledger.app.errors import NotificationError
from roomledger.app.models.notification import (
    Notification,
    NotificationType,
    RelatedEntityType,
)

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    kind: NotificationType
    recipients: list[int]
    message: str
    payload: dict = field(default_factory=dict)
    sender_id: int | None = None
    related_entity_type: RelatedEntityType | None = None
    related_entity_id: int | None = None


class NotificationDispatch:
    """Interface consumed by the ledger services."""

    def notify(self, event: NotificationEvent) -> None:
        raise NotImplementedError


class LoggingDispatch(NotificationDispatch):

    def notify(self, event: NotificationEvent) -> None:
        for recipient_id in event.recipients:
            logger.info(
                "notification %s -> tenant %s: %s",
                event.kind.value,
                recipient_id,
                event.message,
            )


class PersistentDispatch(NotificationDispatch):
    """
    Stores notifications with the given session.

    Called only after the ledger change has been committed, so rolling back
    here never touches ledger rows.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def notify(self, event: NotificationEvent) -> None:
        try:
            for recipient_id in event.recipients:
                self._session.add(Notification(
                    message=event.message,
                    type=event.kind,
                    recipient_id=recipient_id,
                    sender_id=event.sender_id,
                    related_entity_type=event.related_entity_type,
                    related_entity_id=event.related_entity_id,
                    payload=event.payload,
                ))
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise NotificationError(
                f"Could not store {event.kind.value} notification: {exc}"
            ) from exc

        for recipient_id in event.recipients:
            logger.info(
                "delivered %s notification to tenant %s",
                event.kind.value,
                recipient_id,
            )


# ── Event builders ─────────────────────────────────────────────────────────

def expense_created_event(expense, creator, recipients: list[int]) -> NotificationEvent:
    """Tells the other participants that `creator` logged a new expense."""
    group_name = expense.group.name if expense.group is not None else None
    message = f'{creator.display_name} created a new expense "{expense.title}"'
    if group_name:
        message += f" in {group_name}"

    return NotificationEvent(
        kind=NotificationType.EXPENSE_CREATED,
        recipients=recipients,
        message=message,
        sender_id=creator.id,
        related_entity_type=RelatedEntityType.EXPENSE,
        related_entity_id=expense.id,
        payload={
            "expense_id": expense.id,
            "expense_title": expense.title,
            "expense_amount": str(expense.receipt_total),
            "group_id": expense.group_id,
            "group_name": group_name,
        },
    )


def split_paid_event(split, expense, payer, payee) -> NotificationEvent:
    """Tells the payee that `payer` settled their share of `expense`."""
    return NotificationEvent(
        kind=NotificationType.SPLIT_PAID,
        recipients=[payee.id],
        message=f'{payer.display_name} paid their share of "{expense.title}"',
        sender_id=payer.id,
        related_entity_type=RelatedEntityType.SPLIT,
        related_entity_id=split.id,
        payload={
            "split_id": split.id,
            "expense_id": expense.id,
            "expense_title": expense.title,
            "split_amount": str(split.split_amount),
            "payer_id": payer.id,
            "payer_name": payer.display_name,
            "payee_id": payee.id,
            "paid_date": split.paid_date.isoformat() if split.paid_date else None,
        },
    )


def build_dispatch(backend: str, session: Session) -> NotificationDispatch:
    """Returns the dispatcher selected by the NOTIFICATION_BACKEND setting."""
    if backend == "database":
        return PersistentDispatch(session)
    return LoggingDispatch()


def safe_notify(dispatch: NotificationDispatch, event: NotificationEvent) -> None:
    """
    Sends `event` and never raises.

    The ledger change that triggered the event is already committed; a
    notification outage must not turn it into a failed request.
    """
    if not event.recipients:
        return
    try:
        dispatch.notify(event)
    except Exception:
        logger.exception(
            "%s notification for %s %s could not be sent",
            event.kind.value,
            event.related_entity_type.value if event.related_entity_type else "entity",
            event.related_entity_id,
        )
