"""
Utility functions for the application.
"""
from typing import Any, Dict, List
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Floats go through str() so 0.1 stays 0.1. Raises ValueError for
    anything that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def quantize_cents(value: Decimal) -> Decimal:
    """Round to whole cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def split_evenly(amount: Decimal, count: int) -> List[Decimal]:
    """
    Split amount into count per-head shares that sum exactly to amount.

    Each share is truncated to cents and the leftover cents go one each to
    the first heads, so no share is more than a cent away from amount / count.
    """
    if count <= 0:
        return []
    amount = quantize_cents(amount)
    per_head = (amount / count).quantize(CENT, rounding=ROUND_DOWN)
    leftover_cents = int((amount - per_head * count) / CENT)
    return [per_head + CENT if i < leftover_cents else per_head for i in range(count)]


def format_response(data: Any, message: str = "Success") -> Dict[str, Any]:
    """Format API response."""
    return {
        "message": message,
        "data": data
    }
