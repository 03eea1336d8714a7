from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from ..core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value a DECIMAL(10,2) column holds.
MAX_AMOUNT = Decimal("99999999.99")


def to_money(value: Any) -> Decimal:
    """Convert user input (str/int/float/Decimal) to a 2-decimal amount."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("Invalid amount")
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            raise ValidationError(f"Invalid amount: {value!r}")
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"Amount cannot exceed {MAX_AMOUNT}")
    return amount


def money_or_zero(value: Any) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def as_float(value: Decimal | None) -> float:
    return float(value) if value is not None else 0.0
