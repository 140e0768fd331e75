"""
schemas/split_schema.py — Marshmallow schemas for split endpoints.

Each schema loads into a request dataclass consumed by SplitService.
Existence checks (expense, tenants) are the service's job.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from marshmallow import Schema, fields, missing, post_load, validate

from roomledger.app.errors import ErrorCode
from roomledger.app.models.split import SplitStatus
from roomledger.app.schemas.expense_schema import validate_monetary_amount


# ── Request types ──────────────────────────────────────────────────────────

@dataclass
class CreateSplitRequest:
    split_amount: Decimal
    assigned_to: int
    expense_id: int | None = None
    assigned_by: int | None = None
    status: SplitStatus = SplitStatus.UNPAID
    paid_date: datetime | None = None


@dataclass
class UpdateSplitRequest:
    """
    Generic correction patch. Fields left as `missing` are not touched; an
    explicit None clears assigned_by.
    """

    status: SplitStatus = missing
    split_amount: Decimal = missing
    assigned_to: int = missing
    assigned_by: int | None = missing
    paid_date: datetime | None = missing

    def changes(self) -> dict:
        return {
            name: value
            for name, value in vars(self).items()
            if value is not missing
        }


@dataclass
class SplitStatusUpdate:
    status: SplitStatus
    paid_date: datetime | None = None


_status_field_kwargs = {
    "by_value": True,
    "error_messages": {"unknown": ErrorCode.INVALID_STATUS},
}

_tenant_id_field_kwargs = {
    "strict": True,
    "validate": validate.Range(min=1, error="Tenant ids must be positive integers."),
}


# ── Create ─────────────────────────────────────────────────────────────────

class SplitInputSchema(Schema):
    """One split in a bulk request. expense_id comes from the URL."""

    split_amount = fields.Decimal(required=True, validate=validate_monetary_amount)
    assigned_to = fields.Int(required=True, **_tenant_id_field_kwargs)
    assigned_by = fields.Int(load_default=None, allow_none=True, **_tenant_id_field_kwargs)
    status = fields.Enum(SplitStatus, load_default=SplitStatus.UNPAID, **_status_field_kwargs)
    paid_date = fields.DateTime(load_default=None, allow_none=True)

    @post_load
    def make_request(self, data: dict, **kwargs) -> CreateSplitRequest:
        return CreateSplitRequest(**data)


class CreateSplitSchema(SplitInputSchema):
    """POST /splits"""

    expense_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="expense_id must be a positive integer."),
    )


class BulkCreateSplitsSchema(Schema):
    """
    POST /splits/expense/:id/bulk

    An empty list is passed through; the service rejects it with EMPTY_SPLITS.
    """

    splits = fields.List(fields.Nested(SplitInputSchema), required=True)


# ── Update ─────────────────────────────────────────────────────────────────

class UpdateSplitSchema(Schema):
    """PUT /splits/:id — correction patch, no notification side effects."""

    status = fields.Enum(SplitStatus, **_status_field_kwargs)
    split_amount = fields.Decimal(validate=validate_monetary_amount)
    assigned_to = fields.Int(**_tenant_id_field_kwargs)
    assigned_by = fields.Int(allow_none=True, **_tenant_id_field_kwargs)
    paid_date = fields.DateTime(allow_none=True)

    @post_load
    def make_request(self, data: dict, **kwargs) -> UpdateSplitRequest:
        return UpdateSplitRequest(**data)


class SplitStatusSchema(Schema):
    """PATCH /splits/:id/status"""

    status = fields.Enum(SplitStatus, required=True, **_status_field_kwargs)
    paid_date = fields.DateTime(load_default=None, allow_none=True)

    @post_load
    def make_request(self, data: dict, **kwargs) -> SplitStatusUpdate:
        return SplitStatusUpdate(**data)
