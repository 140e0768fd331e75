"""
services/split_allocator.py — Equal-split computation.

Pure function: no database, no Flask, no clock unless `now` is omitted.

Rounding rule:
  Each share is total / n rounded DOWN to the cent. The leftover cents go to
  the creator's share, so sum(shares) == total exactly. Example: 10.00 split
  three ways is 3.34 (creator) + 3.33 + 3.33.

The creator always shares in their own expense and their share is settled
from the start: status 'paid', paid_date = now. Everyone else starts
'unpaid' with no paid_date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal

from roomledger.app.errors import AppError, ErrorCode, RuleViolationError
from roomledger.app.models.split import SplitStatus
from roomledger.app.models.types import CENT


@dataclass
class SplitAllocation:
    """A split row ready to be persisted for a new expense."""

    assigned_to: int
    assigned_by: int
    split_amount: Decimal
    status: SplitStatus
    paid_date: datetime | None


def validate_participants(participant_ids: list[int], creator_id: int) -> None:
    """
    Raises RuleViolationError unless the participant list is usable:
    non-empty, free of duplicates, and containing the creator.
    """
    if not participant_ids:
        raise RuleViolationError(
            ErrorCode.EMPTY_PARTICIPANTS,
            "At least one participant must be selected.",
            field="selected_participants",
        )

    if len(set(participant_ids)) != len(participant_ids):
        raise RuleViolationError(
            ErrorCode.DUPLICATE_PARTICIPANT,
            "The same tenant appears more than once in selected_participants.",
            field="selected_participants",
        )

    if creator_id not in participant_ids:
        raise RuleViolationError(
            ErrorCode.CREATOR_NOT_PARTICIPANT,
            "creator must be included in selected_participants.",
            field="selected_participants",
        )


def allocate_equal_splits(
        total: Decimal,
        participant_ids: list[int],
        creator_id: int,
        now: datetime | None = None,
) -> list[SplitAllocation]:
    """
    Divides `total` equally among `participant_ids`.

    Args:
        total:           Expense receipt_total. Must be a positive Decimal.
        participant_ids: Ordered tenant ids. Output keeps this order.
        creator_id:      Tenant who paid the receipt. Receives the remainder
                         and is pre-settled.
        now:             Timestamp for the creator's paid_date. Defaults to
                         the current UTC time.

    Returns:
        One SplitAllocation per participant.
    """
    if total <= Decimal("0"):
        raise RuleViolationError(
            ErrorCode.INVALID_AMOUNT,
            "receipt_total must be greater than zero.",
            field="receipt_total",
        )
    validate_participants(participant_ids, creator_id)

    settled_at = now or datetime.now(timezone.utc)
    n = len(participant_ids)
    base = (total / Decimal(n)).quantize(CENT, rounding=ROUND_DOWN)
    remainder = total - (base * n)

    if base <= Decimal("0"):
        # e.g. 0.02 across three tenants: somebody would owe nothing.
        raise RuleViolationError(
            ErrorCode.INVALID_AMOUNT,
            f"receipt_total {total} is too small to split among {n} participants.",
            field="receipt_total",
        )

    allocations = []
    for tenant_id in participant_ids:
        is_creator = tenant_id == creator_id
        allocations.append(SplitAllocation(
            assigned_to=tenant_id,
            assigned_by=creator_id,
            split_amount=base + remainder if is_creator else base,
            status=SplitStatus.PAID if is_creator else SplitStatus.UNPAID,
            paid_date=settled_at if is_creator else None,
        ))

    computed_sum = sum(a.split_amount for a in allocations)
    if computed_sum != total:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Equal split produced sum {computed_sum} for total {total}.",
            500,
        )

    return allocations
