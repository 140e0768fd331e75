"""
routes/serializers.py — ORM object → plain dict for JSON output.

Pure data-shaping: no DB queries beyond already-loaded relationships, no
business rules. Amounts are strings so 10.50 never becomes 10.5.
"""

from __future__ import annotations

from datetime import datetime

from roomledger.app.models.expense import Expense
from roomledger.app.models.split import Split


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_split(split: Split) -> dict:
    return {
        "id": split.id,
        "expense_id": split.expense_id,
        "status": split.status.value,
        "split_amount": str(split.split_amount),
        "assigned_to": split.assigned_to,
        "assigned_by": split.assigned_by,
        "paid_date": _iso(split.paid_date),
        "created_at": _iso(split.created_at),
        "updated_at": _iso(split.updated_at),
    }


def serialize_expense(expense: Expense, include_splits: bool = True) -> dict:
    data = {
        "id": expense.id,
        "group_id": expense.group_id,
        "created_by": expense.created_by,
        "category": expense.category,
        "title": expense.title,
        "description": expense.description,
        "receipt_total": str(expense.receipt_total),
        "created_at": _iso(expense.created_at),
        "updated_at": _iso(expense.updated_at),
    }
    if include_splits:
        data["splits"] = [serialize_split(s) for s in expense.splits]
    return data


def envelope(data) -> dict:
    return {"data": data, "warnings": []}
