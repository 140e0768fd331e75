"""
services/expense_service.py — Expense business logic.

Rules enforced here:
  - selected_participants is non-empty and contains the creator
    (EMPTY_PARTICIPANTS / CREATOR_NOT_PARTICIPANT, 422).
  - The group, the creator and every participant exist (404).
  - An expense and all of its splits are written in ONE transaction. If any
    insert fails the whole unit is rolled back and no expense row is left
    behind (PersistenceError, 500).
  - Updating an expense never recomputes its splits. A changed receipt_total
    can therefore disagree with sum(splits); that gap is known and kept.
  - Deleting an expense deletes its splits first, in the same transaction.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives request dataclasses and ints; returns ORM objects or raises AppError.
  - Owns its transactions: every mutating method commits or rolls back
    before returning, then sends notifications.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from roomledger.app.errors import ErrorCode, NotFoundError
from roomledger.app.models.expense import Expense
from roomledger.app.models.group import Group
from roomledger.app.models.split import Split
from roomledger.app.models.tenant import Tenant
from roomledger.app.models.types import to_money
from roomledger.app.schemas.expense_schema import (
    CreateExpenseRequest,
    UpdateExpenseRequest,
)
from roomledger.app.services.notification_service import (
    NotificationDispatch,
    expense_created_event,
    safe_notify,
)
from roomledger.app.services.split_allocator import (
    SplitAllocation,
    allocate_equal_splits,
    validate_participants,
)
from roomledger.app.services.transaction import atomic

logger = logging.getLogger(__name__)


class ExpenseService:

    def __init__(self, session: Session, dispatch: NotificationDispatch) -> None:
        self._session = session
        self._dispatch = dispatch

    # ── Lookups ────────────────────────────────────────────────────────────

    def _get_group_or_404(self, group_id: int) -> Group:
        group = self._session.get(Group, group_id)
        if group is None:
            raise NotFoundError(
                ErrorCode.GROUP_NOT_FOUND,
                f"Group {group_id} does not exist.",
            )
        return group

    def _get_tenant_or_404(self, tenant_id: int) -> Tenant:
        tenant = self._session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError(
                ErrorCode.TENANT_NOT_FOUND,
                f"Tenant {tenant_id} does not exist.",
            )
        return tenant

    def _require_tenants_exist(self, tenant_ids: list[int]) -> None:
        """Raises TENANT_NOT_FOUND (404) for the first id with no tenant row."""
        found = set(self._session.execute(
            select(Tenant.id).where(Tenant.id.in_(tenant_ids))
        ).scalars().all())
        for tenant_id in tenant_ids:
            if tenant_id not in found:
                raise NotFoundError(
                    ErrorCode.TENANT_NOT_FOUND,
                    f"Tenant {tenant_id} does not exist.",
                )

    def _group_member_ids(self, group_id: int) -> list[int]:
        stmt = select(Tenant.id).where(Tenant.group_id == group_id).order_by(Tenant.id)
        return list(self._session.execute(stmt).scalars().all())

    # ── Writes ─────────────────────────────────────────────────────────────

    def _insert_splits(
            self,
            expense: Expense,
            allocations: list[SplitAllocation],
    ) -> list[Split]:
        splits = [
            Split(
                expense_id=expense.id,
                split_amount=a.split_amount,
                assigned_to=a.assigned_to,
                assigned_by=a.assigned_by,
                status=a.status,
                paid_date=a.paid_date,
            )
            for a in allocations
        ]
        self._session.add_all(splits)
        self._session.flush()
        return splits

    def create_expense(self, request: CreateExpenseRequest) -> Expense:
        """
        Records a new expense and splits it equally among the participants.

        The creator's own split is created already paid. Every other
        participant gets an unpaid split assigned_by the creator.

        Returns:
            The committed Expense with its splits loaded.
        """
        participants = list(request.selected_participants)
        validate_participants(participants, request.creator_id)

        group = self._get_group_or_404(request.group_id)
        creator = self._get_tenant_or_404(request.creator_id)
        self._require_tenants_exist(participants)

        allocations = allocate_equal_splits(
            request.receipt_total,
            participants,
            creator.id,
        )

        with atomic(self._session, "create expense"):
            expense = Expense(
                category=request.category,
                title=request.title,
                description=request.description,
                receipt_total=request.receipt_total,
                group_id=group.id,
                created_by=creator.id,
            )
            self._session.add(expense)
            self._session.flush()  # populate expense.id before creating splits

            self._insert_splits(expense, allocations)

        self._session.refresh(expense)
        logger.info(
            "expense %s created in group %s: %s split %d ways",
            expense.id,
            expense.group_id,
            expense.receipt_total,
            len(allocations),
        )

        recipients = [
            tenant_id
            for tenant_id in self._group_member_ids(expense.group_id)
            if tenant_id != creator.id
        ]
        safe_notify(self._dispatch, expense_created_event(expense, creator, recipients))

        return expense

    def update_expense(self, expense_id: int, request: UpdateExpenseRequest) -> Expense:
        """
        Updates category, title, description and/or receipt_total in place.

        Existing splits are NOT recomputed, even when receipt_total changes.
        """
        expense = self.get_expense_by_id(expense_id)

        with atomic(self._session, "update expense"):
            for name, value in request.changes().items():
                setattr(expense, name, value)
            expense.updated_at = datetime.now(timezone.utc)

        self._session.refresh(expense)
        return expense

    def delete_expense(self, expense_id: int) -> None:
        """Deletes the expense and all of its splits in one transaction."""
        expense = self.get_expense_by_id(expense_id)

        with atomic(self._session, "delete expense"):
            for split in list(expense.splits):
                self._session.delete(split)
            self._session.flush()
            # The loaded collection still lists the deleted rows.
            self._session.expire(expense, ["splits"])
            self._session.delete(expense)

        logger.info("expense %s deleted with its splits", expense_id)

    # ── Reads ──────────────────────────────────────────────────────────────

    def get_expense_by_id(self, expense_id: int) -> Expense:
        expense = self._session.get(Expense, expense_id)
        if expense is None:
            raise NotFoundError(
                ErrorCode.EXPENSE_NOT_FOUND,
                f"Expense {expense_id} does not exist.",
            )
        return expense

    def get_expenses_by_group(self, group_id: int) -> list[Expense]:
        """All expenses of a group, newest first."""
        self._get_group_or_404(group_id)
        stmt = (
            select(Expense)
            .where(Expense.group_id == group_id)
            .order_by(Expense.created_at.desc(), Expense.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def get_expenses_by_category(self, group_id: int, category: str) -> list[Expense]:
        """Expenses of a group with exactly this category label, newest first."""
        self._get_group_or_404(group_id)
        stmt = (
            select(Expense)
            .where(
                Expense.group_id == group_id,
                Expense.category == category,
            )
            .order_by(Expense.created_at.desc(), Expense.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def get_total_expenses_by_group(self, group_id: int) -> Decimal:
        """Sum of receipt_total for the group. 0.00 when it has no expenses."""
        total = self._session.execute(
            select(func.coalesce(func.sum(Expense.receipt_total), 0))
            .where(Expense.group_id == group_id)
        ).scalar_one()
        return to_money(total)
