# backend/herbanet/core/money.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from herbanet.core.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """
    Fixed-point rupiah amount with 2 decimal places.
    Floats are routed through str() so 0.1 stays 0.10.
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def require_non_negative(value, field: str = "amount") -> Decimal:
    amount = to_money(value)
    if amount < 0:
        raise ValidationError(f"{field} must not be negative")
    return amount


def require_positive(value, field: str = "amount") -> Decimal:
    amount = to_money(value)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount
