"""
services/split_service.py — Split lifecycle.

State machine:
    unpaid ──► pending ──► paid
       └────────────────────┘

  - Splits start 'unpaid', except the expense creator's own split which the
    allocator creates already 'paid'.
  - unpaid → paid and pending → paid are both valid.
  - Nothing forbids moving a paid split back to unpaid/pending; doing so
    clears paid_date like any other non-paid status.
  - paid_date is set exactly when the status is 'paid'.
  - There is no version column. Two concurrent status updates on one split
    are last-write-wins.

Side effects:
  update_split_status(..., 'paid') commits first, then sends a split_paid
  notification to the payee (assigned_by, or the expense creator when
  assigned_by is empty). A failing notification is logged and swallowed.
  update_split() is the correction path and never notifies.

Sum invariant:
  Editing one split's amount does not re-check sum(splits) against the
  expense total. The mismatch is allowed to exist.

Layer rules:
  - No Flask imports.
  - Owns its transactions; raises AppError subclasses only.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from roomledger.app.errors import ErrorCode, NotFoundError, RuleViolationError
from roomledger.app.models.expense import Expense
from roomledger.app.models.split import Split, SplitStatus
from roomledger.app.models.tenant import Tenant
from roomledger.app.models.types import to_money
from roomledger.app.schemas.split_schema import CreateSplitRequest, UpdateSplitRequest
from roomledger.app.services.notification_service import (
    NotificationDispatch,
    safe_notify,
    split_paid_event,
)
from roomledger.app.services.transaction import atomic

logger = logging.getLogger(__name__)


def _paid_date_for(status: SplitStatus, paid_date: datetime | None) -> datetime | None:
    """paid_date that goes with `status`: given or now when paid, else None."""
    if status == SplitStatus.PAID:
        return paid_date or datetime.now(timezone.utc)
    return None


class SplitService:

    def __init__(self, session: Session, dispatch: NotificationDispatch) -> None:
        self._session = session
        self._dispatch = dispatch

    # ── Lookups ────────────────────────────────────────────────────────────

    def _get_expense_or_404(self, expense_id: int) -> Expense:
        expense = self._session.get(Expense, expense_id)
        if expense is None:
            raise NotFoundError(
                ErrorCode.EXPENSE_NOT_FOUND,
                f"Expense {expense_id} does not exist.",
            )
        return expense

    def _get_tenant_or_404(self, tenant_id: int) -> Tenant:
        tenant = self._session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError(
                ErrorCode.TENANT_NOT_FOUND,
                f"Tenant {tenant_id} does not exist.",
            )
        return tenant

    def get_split_by_id(self, split_id: int) -> Split:
        split = self._session.get(Split, split_id)
        if split is None:
            raise NotFoundError(
                ErrorCode.SPLIT_NOT_FOUND,
                f"Split {split_id} does not exist.",
            )
        return split

    # ── Create ─────────────────────────────────────────────────────────────

    def _build_split(self, expense: Expense, request: CreateSplitRequest) -> Split:
        self._get_tenant_or_404(request.assigned_to)
        assigned_by = request.assigned_by
        if assigned_by is None:
            assigned_by = expense.created_by
        else:
            self._get_tenant_or_404(assigned_by)

        return Split(
            expense_id=expense.id,
            split_amount=request.split_amount,
            assigned_to=request.assigned_to,
            assigned_by=assigned_by,
            status=request.status,
            paid_date=_paid_date_for(request.status, request.paid_date),
        )

    def create_split(self, request: CreateSplitRequest) -> Split:
        """
        Adds one split to an existing expense.

        assigned_by defaults to the expense creator. The expense total is not
        re-checked against the new sum of splits.
        """
        expense = self._get_expense_or_404(request.expense_id)
        split = self._build_split(expense, request)

        with atomic(self._session, "create split"):
            self._session.add(split)

        self._session.refresh(split)
        return split

    def create_splits_for_expense(
            self,
            expense_id: int,
            requests: list[CreateSplitRequest],
    ) -> list[Split]:
        """Adds several splits to an expense in one transaction."""
        if not requests:
            raise RuleViolationError(
                ErrorCode.EMPTY_SPLITS,
                "The splits array is required and must not be empty.",
                field="splits",
            )

        expense = self._get_expense_or_404(expense_id)
        splits = [self._build_split(expense, r) for r in requests]

        with atomic(self._session, "create splits"):
            self._session.add_all(splits)

        for split in splits:
            self._session.refresh(split)
        return splits

    # ── Status transitions ─────────────────────────────────────────────────

    def update_split_status(
            self,
            split_id: int,
            status: SplitStatus,
            paid_date: datetime | None = None,
    ) -> Split:
        """
        Moves a split to `status`.

        'paid' sets paid_date to `paid_date` (or now). Any other status clears
        paid_date, even if the split had been paid before. A transition to
        'paid' notifies the payee after the commit.
        """
        split = self.get_split_by_id(split_id)
        previous = split.status

        with atomic(self._session, "update split status"):
            split.status = status
            split.paid_date = _paid_date_for(status, paid_date)

        logger.info("split %s: %s -> %s", split_id, previous.value, status.value)

        if status == SplitStatus.PAID:
            self._notify_settlement(split)

        return split

    def _notify_settlement(self, split: Split) -> None:
        expense = split.expense
        payer = split.assigned_tenant
        payee = split.assigned_by_tenant or expense.creator
        if payer is None or payee is None:
            logger.warning("split %s settled but payer or payee no longer exists", split.id)
            return
        safe_notify(self._dispatch, split_paid_event(split, expense, payer, payee))

    # ── Corrections ────────────────────────────────────────────────────────

    def update_split(self, split_id: int, request: UpdateSplitRequest) -> Split:
        """
        Patches status, split_amount, assigned_to, assigned_by or paid_date.

        No notification is sent. sum(splits) is not re-validated.

        paid_date is re-derived from the resulting status whatever the patch
        holds: a paid_date sent for a split that does not end up paid is
        dropped.
        """
        split = self.get_split_by_id(split_id)
        changes = request.changes()

        if "assigned_to" in changes:
            self._get_tenant_or_404(changes["assigned_to"])
        if changes.get("assigned_by") is not None:
            self._get_tenant_or_404(changes["assigned_by"])

        with atomic(self._session, "update split"):
            for name, value in changes.items():
                setattr(split, name, value)
            split.paid_date = _paid_date_for(
                split.status,
                changes.get("paid_date") or split.paid_date,
            )

        self._session.refresh(split)
        return split

    def delete_split(self, split_id: int) -> None:
        split = self.get_split_by_id(split_id)
        with atomic(self._session, "delete split"):
            self._session.delete(split)

    # ── Reads ──────────────────────────────────────────────────────────────

    def get_splits_by_expense(self, expense_id: int) -> list[Split]:
        """All splits of an expense, oldest first."""
        self._get_expense_or_404(expense_id)
        stmt = (
            select(Split)
            .where(Split.expense_id == expense_id)
            .order_by(Split.created_at.asc(), Split.id.asc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def get_splits_by_tenant(self, tenant_id: int) -> list[Split]:
        """Every split the tenant owes, in any status, newest first."""
        self._get_tenant_or_404(tenant_id)
        stmt = (
            select(Split)
            .where(Split.assigned_to == tenant_id)
            .order_by(Split.created_at.desc(), Split.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def get_splits_by_status(self, expense_id: int, status: SplitStatus) -> list[Split]:
        stmt = (
            select(Split)
            .where(
                Split.expense_id == expense_id,
                Split.status == status,
            )
            .order_by(Split.id.asc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def get_total_splits_by_status(self, expense_id: int, status: SplitStatus) -> Decimal:
        """Sum of split_amount for the matching splits. 0.00 when none match."""
        total = self._session.execute(
            select(func.coalesce(func.sum(Split.split_amount), 0))
            .where(
                Split.expense_id == expense_id,
                Split.status == status,
            )
        ).scalar_one()
        return to_money(total)
