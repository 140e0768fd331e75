"""
schemas/expense_schema.py — Marshmallow schemas for expense endpoints.

Validation responsibility:
  - This file: field types, lengths, decimal precision, positivity.
  - services/expense_service.py: creator-in-participants, non-empty
    participant list, existence of the group and creator.

Schemas load into typed request dataclasses so the services never read
untyped dicts. creator_id is not part of the body; the route fills it in from
the caller's tenant record with dataclasses.replace().

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, missing, post_load, validate

from roomledger.app.errors import ErrorCode


# ── Request types ──────────────────────────────────────────────────────────

@dataclass
class CreateExpenseRequest:
    category: str
    title: str
    receipt_total: Decimal
    group_id: int
    selected_participants: list[int]
    description: str | None = None
    creator_id: int | None = None


@dataclass
class UpdateExpenseRequest:
    """
    Fields left as `missing` were not sent and are not touched. An explicit
    None clears a nullable column (description).
    """

    category: str = missing
    title: str = missing
    description: str | None = missing
    receipt_total: Decimal = missing

    def changes(self) -> dict:
        return {
            name: value
            for name, value in vars(self).items()
            if value is not missing
        }


# ── Shared monetary amount validator ──────────────────────────────────────

def validate_monetary_amount(value: Decimal) -> None:
    """
    Strictly positive, at most 2 decimal places.

    More than 2 decimal places is REJECTED with INVALID_AMOUNT_PRECISION,
    never rounded or truncated.
    """
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")

    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → reject
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


_category_field_validators = [
    validate.Length(min=1, max=100, error="Category must be between 1 and 100 characters."),
    _validate_non_empty_after_trim,
]

_title_field_validators = [
    validate.Length(min=1, max=255, error="Title must be between 1 and 255 characters."),
    _validate_non_empty_after_trim,
]


# ── Create expense ─────────────────────────────────────────────────────────

class CreateExpenseSchema(Schema):
    """
    POST /expenses

    selected_participants may be sent empty; the service answers that with
    EMPTY_PARTICIPANTS (422) so the rule lives in one place.
    """

    category = fields.Str(required=True, validate=_category_field_validators)
    title = fields.Str(required=True, validate=_title_field_validators)
    description = fields.Str(load_default=None, allow_none=True)

    receipt_total = fields.Decimal(
        required=True,
        validate=validate_monetary_amount,
    )

    group_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="group_id must be a positive integer."),
    )

    selected_participants = fields.List(
        fields.Int(
            strict=True,
            validate=validate.Range(min=1, error="Participant ids must be positive integers."),
        ),
        required=True,
    )

    @post_load
    def make_request(self, data: dict, **kwargs) -> CreateExpenseRequest:
        return CreateExpenseRequest(**data)


# ── Update expense ─────────────────────────────────────────────────────────

class UpdateExpenseSchema(Schema):
    """
    PUT /expenses/:id

    Only category, title, description and receipt_total are editable.
    group_id and the creator are fixed at creation. Changing receipt_total
    does not touch the existing splits.
    """

    category = fields.Str(validate=_category_field_validators)
    title = fields.Str(validate=_title_field_validators)
    description = fields.Str(allow_none=True)
    receipt_total = fields.Decimal(validate=validate_monetary_amount)

    @post_load
    def make_request(self, data: dict, **kwargs) -> UpdateExpenseRequest:
        return UpdateExpenseRequest(**data)
