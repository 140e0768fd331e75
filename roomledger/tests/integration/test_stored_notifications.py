"""
tests/integration/test_stored_notifications.py — PersistentDispatch end to end.

With NOTIFICATION_BACKEND="database" every event becomes one notifications
row per recipient, written after the ledger change has committed.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from roomledger.app.extensions import db
from roomledger.app.models.notification import (
    Notification,
    NotificationType,
    RelatedEntityType,
)
from roomledger.app.models.split import SplitStatus
from roomledger.app.registry import build_services
from roomledger.app.schemas.expense_schema import CreateExpenseRequest
from roomledger.app.services.notification_service import PersistentDispatch

from .conftest import make_household


@pytest.fixture
def stored(session):
    return build_services(db.session, PersistentDispatch(db.session))


def _rows(session, kind):
    stmt = select(Notification).where(Notification.type == kind).order_by(Notification.id)
    return list(session.execute(stmt).scalars().all())


def test_expense_and_payment_are_stored(session, stored):
    group, (alice, bob) = make_household(session, "Alice", "Bob")
    expense = stored.expenses.create_expense(CreateExpenseRequest(
        category="groceries",
        title="Weekly shop",
        receipt_total=Decimal("40.00"),
        group_id=group.id,
        selected_participants=[alice.id, bob.id],
        creator_id=alice.id,
    ))
    bob_split = next(s for s in expense.splits if s.assigned_to == bob.id)

    stored.splits.update_split_status(bob_split.id, SplitStatus.PAID)

    created = _rows(session, NotificationType.EXPENSE_CREATED)
    assert [n.recipient_id for n in created] == [bob.id]
    assert created[0].related_entity_type == RelatedEntityType.EXPENSE
    assert created[0].payload["expense_amount"] == "40.00"

    paid = _rows(session, NotificationType.SPLIT_PAID)
    assert [n.recipient_id for n in paid] == [alice.id]
    assert paid[0].sender_id == bob.id
    assert paid[0].related_entity_id == bob_split.id
    assert paid[0].is_read is False
