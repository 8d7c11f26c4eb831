# Overview: Decimal helpers for money, weight and percentage values.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

MONEY_PLACES = Decimal("0.01")
WEIGHT_PLACES = Decimal("0.001")

ZERO = Decimal("0")


def to_decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """
    Coerce ints, floats, strings and Decimals to Decimal.

    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.
    None returns ``default``.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Boolean is not a number")
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


def round_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_weight(value: Any) -> Decimal:
    return to_decimal(value).quantize(WEIGHT_PLACES, rounding=ROUND_HALF_UP)


def as_float(value: Optional[Decimal]) -> Optional[float]:
    """JSON-friendly number for to_dict() output."""
    if value is None:
        return None
    return float(value)
