"""
services/aggregation_service.py — Tenant-centric roll-ups over the splits table.

Every operation starts from the requesting USER id and resolves that user's
tenant record first. A user with no tenant record gets TENANT_NOT_FOUND (404).

Views:
  to pay      — splits the tenant owes (assigned_to), still unpaid/pending
  to receive  — splits owed to the tenant (assigned_by), still unpaid/pending
  history     — paid splits where the tenant is payer OR payee

The summary runs one SUM/COUNT query per view instead of loading the rows.
Empty views give total 0.00 and count 0, never None.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from roomledger.app.errors import ErrorCode, NotFoundError
from roomledger.app.models.split import OPEN_STATUSES, Split, SplitStatus
from roomledger.app.models.tenant import Tenant
from roomledger.app.models.types import to_money


@dataclass
class SummaryTotals:
    total: Decimal
    count: int

    def to_dict(self) -> dict:
        return {"total": str(self.total), "count": self.count}


@dataclass
class SplitSummary:
    to_pay: SummaryTotals
    to_receive: SummaryTotals
    history: SummaryTotals

    def to_dict(self) -> dict:
        return {
            "to_pay": self.to_pay.to_dict(),
            "to_receive": self.to_receive.to_dict(),
            "history": self.history.to_dict(),
        }


def _to_pay_filter(tenant_id: int):
    return (
        Split.assigned_to == tenant_id,
        Split.status.in_(OPEN_STATUSES),
    )


def _to_receive_filter(tenant_id: int):
    return (
        Split.assigned_by == tenant_id,
        Split.status.in_(OPEN_STATUSES),
    )


def _history_filter(tenant_id: int):
    return (
        Split.status == SplitStatus.PAID,
        or_(Split.assigned_to == tenant_id, Split.assigned_by == tenant_id),
    )


class AggregationService:

    def __init__(self, session: Session) -> None:
        self._session = session

    def resolve_tenant(self, user_id: int) -> Tenant:
        """Returns the tenant record for `user_id` or raises TENANT_NOT_FOUND (404)."""
        tenant = self._session.execute(
            select(Tenant).where(Tenant.user_id == user_id)
        ).scalar_one_or_none()
        if tenant is None:
            raise NotFoundError(
                ErrorCode.TENANT_NOT_FOUND,
                f"User {user_id} has no tenant record.",
            )
        return tenant

    def _list(self, conditions, *order_by) -> list[Split]:
        stmt = select(Split).where(*conditions).order_by(*order_by)
        return list(self._session.execute(stmt).scalars().all())

    def _totals(self, conditions) -> SummaryTotals:
        total, count = self._session.execute(
            select(
                func.coalesce(func.sum(Split.split_amount), 0),
                func.count(Split.id),
            ).where(*conditions)
        ).one()
        return SummaryTotals(total=to_money(total), count=int(count or 0))

    def get_to_pay(self, user_id: int) -> list[Split]:
        """Open splits this user's tenant owes to others, newest first."""
        tenant = self.resolve_tenant(user_id)
        return self._list(
            _to_pay_filter(tenant.id),
            Split.created_at.desc(),
            Split.id.desc(),
        )

    def get_to_receive(self, user_id: int) -> list[Split]:
        """Open splits others owe this user's tenant, newest first."""
        tenant = self.resolve_tenant(user_id)
        return self._list(
            _to_receive_filter(tenant.id),
            Split.created_at.desc(),
            Split.id.desc(),
        )

    def get_history(self, user_id: int) -> list[Split]:
        """Paid splits on either side of the ledger, most recently paid first."""
        tenant = self.resolve_tenant(user_id)
        return self._list(
            _history_filter(tenant.id),
            Split.paid_date.desc(),
            Split.id.desc(),
        )

    def get_summary(self, user_id: int) -> SplitSummary:
        tenant = self.resolve_tenant(user_id)
        return SplitSummary(
            to_pay=self._totals(_to_pay_filter(tenant.id)),
            to_receive=self._totals(_to_receive_filter(tenant.id)),
            history=self._totals(_history_filter(tenant.id)),
        )
