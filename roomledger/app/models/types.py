"""Column helpers shared by the ledger models."""

from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import Numeric

# Monetary columns: NUMERIC(10, 2). Never Float.
MONEY = Numeric(10, 2)


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'paid'), not names ('PAID')."""
    return [member.value for member in enum_cls]


CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """
    Normalises a SUM() result to a 2-dp Decimal.

    Drivers disagree on what SUM(NUMERIC) returns (Decimal, float, int 0 from
    COALESCE), so aggregates always pass through here.
    """
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)
