"""
tests/integration/test_split_lifecycle.py — SplitService against a real database.

Rules verified:
  - paid_date is set exactly when a split is paid, and cleared otherwise
  - Marking a split paid notifies the tenant it is owed to
  - A broken notification backend never fails the status change
  - Moving a paid split back to unpaid or pending is allowed
  - A later status update overwrites an earlier one
  - update_split corrects fields silently and does not re-check the sum
  - Direct and bulk creation default assigned_by to the expense creator
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from roomledger.app.errors import ErrorCode, NotFoundError, RuleViolationError
from roomledger.app.models.notification import NotificationType
from roomledger.app.models.split import SplitStatus
from roomledger.app.schemas.expense_schema import CreateExpenseRequest
from roomledger.app.schemas.split_schema import CreateSplitRequest, UpdateSplitRequest

from .conftest import make_household


def _shared_bill(session, services, total="90.00"):
    """Alice pays a bill shared by Alice, Bob and Carol."""
    group, (alice, bob, carol) = make_household(session, "Alice", "Bob", "Carol")
    expense = services.expenses.create_expense(CreateExpenseRequest(
        category="utilities",
        title="Electricity",
        receipt_total=Decimal(total),
        group_id=group.id,
        selected_participants=[alice.id, bob.id, carol.id],
        creator_id=alice.id,
    ))
    splits = {s.assigned_to: s for s in expense.splits}
    return expense, (alice, bob, carol), splits


# ═══════════════════════════════════════════════════════════════════════════
# update_split_status
# ═══════════════════════════════════════════════════════════════════════════

def test_mark_paid_sets_paid_date(session, services):
    _, (_, bob, _), splits = _shared_bill(session, services)

    split = services.splits.update_split_status(splits[bob.id].id, SplitStatus.PAID)

    assert split.status == SplitStatus.PAID
    assert split.paid_date is not None


def test_mark_paid_keeps_supplied_paid_date(session, services):
    _, (_, bob, _), splits = _shared_bill(session, services)
    when = datetime(2026, 2, 14, 9, 30, tzinfo=timezone.utc)

    split = services.splits.update_split_status(splits[bob.id].id, SplitStatus.PAID, when)

    assert split.paid_date.replace(tzinfo=None) == when.replace(tzinfo=None)


def test_pending_never_carries_paid_date(session, services):
    _, (_, bob, _), splits = _shared_bill(session, services)
    when = datetime(2026, 2, 14, tzinfo=timezone.utc)

    split = services.splits.update_split_status(splits[bob.id].id, SplitStatus.PENDING, when)

    assert split.status == SplitStatus.PENDING
    assert split.paid_date is None


def test_paid_back_to_unpaid_clears_paid_date(session, services):
    _, (alice, _, _), splits = _shared_bill(session, services)

    split = services.splits.update_split_status(splits[alice.id].id, SplitStatus.UNPAID)

    assert split.status == SplitStatus.UNPAID
    assert split.paid_date is None


def test_later_status_update_overwrites_earlier(session, services):
    _, (_, bob, _), splits = _shared_bill(session, services)
    split_id = splits[bob.id].id

    services.splits.update_split_status(split_id, SplitStatus.PAID)
    services.splits.update_split_status(split_id, SplitStatus.PENDING)

    split = services.splits.get_split_by_id(split_id)
    assert split.status == SplitStatus.PENDING
    assert split.paid_date is None


def test_paid_notifies_the_creditor(session, services, recorder):
    expense, (alice, bob, _), splits = _shared_bill(session, services)

    services.splits.update_split_status(splits[bob.id].id, SplitStatus.PAID)

    events = recorder.of_kind(NotificationType.SPLIT_PAID)
    assert len(events) == 1
    assert events[0].recipients == [alice.id]
    assert events[0].sender_id == bob.id
    assert events[0].related_entity_id == splits[bob.id].id
    assert events[0].message == 'Bob paid their share of "Electricity"'
    assert events[0].payload["expense_id"] == expense.id


def test_pending_sends_no_notification(session, services, recorder):
    _, (_, bob, _), splits = _shared_bill(session, services)

    services.splits.update_split_status(splits[bob.id].id, SplitStatus.PENDING)

    assert recorder.of_kind(NotificationType.SPLIT_PAID) == []


def test_notification_failure_keeps_status_change(session, services, recorder):
    _, (_, bob, _), splits = _shared_bill(session, services)
    recorder.error = RuntimeError("dispatcher offline")

    services.splits.update_split_status(splits[bob.id].id, SplitStatus.PAID)

    session.expire_all()
    assert services.splits.get_split_by_id(splits[bob.id].id).status == SplitStatus.PAID


def test_status_on_missing_split(session, services):
    with pytest.raises(NotFoundError) as exc:
        services.splits.update_split_status(404, SplitStatus.PAID)
    assert exc.value.code == ErrorCode.SPLIT_NOT_FOUND


# ═══════════════════════════════════════════════════════════════════════════
# update_split / delete_split
# ═══════════════════════════════════════════════════════════════════════════

def test_update_split_amount_leaves_sum_mismatch(session, services):
    expense, (_, bob, _), splits = _shared_bill(session, services)

    services.splits.update_split(splits[bob.id].id, UpdateSplitRequest(split_amount=Decimal("45.00")))

    total = sum(s.split_amount for s in services.splits.get_splits_by_expense(expense.id))
    assert total == Decimal("105.00")
    assert services.expenses.get_expense_by_id(expense.id).receipt_total == Decimal("90.00")


def test_update_split_status_change_is_silent(session, services, recorder):
    _, (_, bob, _), splits = _shared_bill(session, services)

    split = services.splits.update_split(splits[bob.id].id, UpdateSplitRequest(status=SplitStatus.PAID))

    assert split.status == SplitStatus.PAID
    assert split.paid_date is not None
    assert recorder.of_kind(NotificationType.SPLIT_PAID) == []


def test_update_split_to_pending_clears_paid_date(session, services):
    _, (alice, _, _), splits = _shared_bill(session, services)

    split = services.splits.update_split(splits[alice.id].id, UpdateSplitRequest(status=SplitStatus.PENDING))

    assert split.paid_date is None


def test_update_split_paid_date_alone_on_unpaid_split_is_dropped(session, services):
    _, (_, bob, _), splits = _shared_bill(session, services)

    split = services.splits.update_split(
        splits[bob.id].id,
        UpdateSplitRequest(paid_date=datetime(2024, 1, 1, tzinfo=timezone.utc)),
    )

    assert split.status == SplitStatus.UNPAID
    assert split.paid_date is None


def test_update_split_paid_date_on_paid_split_is_kept(session, services):
    _, (alice, _, _), splits = _shared_bill(session, services)
    corrected = datetime(2024, 1, 1, 12, 0)

    split = services.splits.update_split(splits[alice.id].id, UpdateSplitRequest(paid_date=corrected))

    assert split.status == SplitStatus.PAID
    assert split.paid_date.replace(tzinfo=None) == corrected


def test_update_split_can_clear_assigned_by(session, services):
    _, (_, bob, _), splits = _shared_bill(session, services)

    split = services.splits.update_split(splits[bob.id].id, UpdateSplitRequest(assigned_by=None))

    assert split.assigned_by is None
    assert split.assigned_to == bob.id


def test_update_split_unknown_tenant(session, services):
    _, (_, bob, _), splits = _shared_bill(session, services)

    with pytest.raises(NotFoundError) as exc:
        services.splits.update_split(splits[bob.id].id, UpdateSplitRequest(assigned_to=999))

    assert exc.value.code == ErrorCode.TENANT_NOT_FOUND


def test_delete_split(session, services):
    expense, (_, bob, _), splits = _shared_bill(session, services)

    services.splits.delete_split(splits[bob.id].id)

    with pytest.raises(NotFoundError):
        services.splits.get_split_by_id(splits[bob.id].id)
    assert len(services.splits.get_splits_by_expense(expense.id)) == 2


# ═══════════════════════════════════════════════════════════════════════════
# direct creation
# ═══════════════════════════════════════════════════════════════════════════

def test_create_split_defaults_assigned_by_to_creator(session, services):
    expense, (alice, _, carol), _ = _shared_bill(session, services)

    split = services.splits.create_split(CreateSplitRequest(
        expense_id=expense.id,
        split_amount=Decimal("5.00"),
        assigned_to=carol.id,
    ))

    assert split.assigned_by == alice.id
    assert split.status == SplitStatus.UNPAID
    assert split.paid_date is None


def test_create_split_as_paid_gets_paid_date(session, services):
    expense, (_, bob, _), _ = _shared_bill(session, services)

    split = services.splits.create_split(CreateSplitRequest(
        expense_id=expense.id,
        split_amount=Decimal("5.00"),
        assigned_to=bob.id,
        status=SplitStatus.PAID,
    ))

    assert split.paid_date is not None


def test_create_split_unknown_expense(session, services):
    _, (alice,) = make_household(session, "Alice")

    with pytest.raises(NotFoundError) as exc:
        services.splits.create_split(CreateSplitRequest(
            expense_id=999,
            split_amount=Decimal("5.00"),
            assigned_to=alice.id,
        ))

    assert exc.value.code == ErrorCode.EXPENSE_NOT_FOUND


def test_bulk_create(session, services):
    expense, (_, bob, carol), _ = _shared_bill(session, services)

    created = services.splits.create_splits_for_expense(expense.id, [
        CreateSplitRequest(split_amount=Decimal("1.50"), assigned_to=bob.id),
        CreateSplitRequest(split_amount=Decimal("2.50"), assigned_to=carol.id),
    ])

    assert [s.split_amount for s in created] == [Decimal("1.50"), Decimal("2.50")]
    assert len(services.splits.get_splits_by_expense(expense.id)) == 5


def test_bulk_create_is_all_or_nothing_on_unknown_tenant(session, services):
    expense, (_, bob, _), _ = _shared_bill(session, services)

    with pytest.raises(NotFoundError):
        services.splits.create_splits_for_expense(expense.id, [
            CreateSplitRequest(split_amount=Decimal("1.50"), assigned_to=bob.id),
            CreateSplitRequest(split_amount=Decimal("2.50"), assigned_to=999),
        ])

    assert len(services.splits.get_splits_by_expense(expense.id)) == 3


def test_bulk_create_empty(session, services):
    expense, _, _ = _shared_bill(session, services)

    with pytest.raises(RuleViolationError) as exc:
        services.splits.create_splits_for_expense(expense.id, [])

    assert exc.value.code == ErrorCode.EMPTY_SPLITS


# ═══════════════════════════════════════════════════════════════════════════
# reads
# ═══════════════════════════════════════════════════════════════════════════

def test_splits_by_status_and_total(session, services):
    expense, (_, bob, _), splits = _shared_bill(session, services, total="10.00")
    services.splits.update_split_status(splits[bob.id].id, SplitStatus.PAID)

    paid = services.splits.get_splits_by_status(expense.id, SplitStatus.PAID)

    assert len(paid) == 2
    assert services.splits.get_total_splits_by_status(expense.id, SplitStatus.PAID) == Decimal("6.67")
    assert services.splits.get_total_splits_by_status(expense.id, SplitStatus.UNPAID) == Decimal("3.33")
    assert services.splits.get_total_splits_by_status(expense.id, SplitStatus.PENDING) == Decimal("0.00")


def test_splits_by_tenant_only_owed_side(session, services):
    _, (alice, bob, _), splits = _shared_bill(session, services)

    bob_splits = services.splits.get_splits_by_tenant(bob.id)
    alice_splits = services.splits.get_splits_by_tenant(alice.id)

    assert [s.id for s in bob_splits] == [splits[bob.id].id]
    assert [s.id for s in alice_splits] == [splits[alice.id].id]


def test_splits_by_unknown_tenant(session, services):
    with pytest.raises(NotFoundError) as exc:
        services.splits.get_splits_by_tenant(999)
    assert exc.value.code == ErrorCode.TENANT_NOT_FOUND


def test_splits_by_unknown_expense(session, services):
    with pytest.raises(NotFoundError) as exc:
        services.splits.get_splits_by_expense(999)
    assert exc.value.code == ErrorCode.EXPENSE_NOT_FOUND
