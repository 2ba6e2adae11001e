"""
Arbitrary-precision decimal helpers.

All ratio math runs on decimal.Decimal under a dedicated context wide enough
for any uint256 value, so large reserves and Q96 price encodings never pass
through a binary float.
"""

import decimal
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from .errors import DivisionByZero

# 2**256 has 78 decimal digits
PRECISION = 78

CONTEXT = decimal.Context(
    prec=PRECISION,
    rounding=decimal.ROUND_HALF_EVEN,
    traps=[decimal.InvalidOperation, decimal.DivisionByZero, decimal.Overflow],
)

PCT_QUANTUM = Decimal("0.01")

Number = Union[int, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Convert an int, numeric string or Decimal to Decimal without float."""
    if isinstance(value, float):
        raise TypeError("floats are not accepted, pass int, str or Decimal")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(value)
    except decimal.InvalidOperation:
        raise ValueError(f"not a decimal number: {value!r}")


def divide(numerator: Number, denominator: Number) -> Decimal:
    """
    Divide two numbers at full precision.

    Raises:
        DivisionByZero: If denominator is zero
    """
    denominator = to_decimal(denominator)
    if denominator.is_zero():
        raise DivisionByZero(f"cannot divide {numerator} by zero")
    with decimal.localcontext(CONTEXT):
        return to_decimal(numerator) / denominator


def add(a: Number, b: Number) -> Decimal:
    with decimal.localcontext(CONTEXT):
        return to_decimal(a) + to_decimal(b)


def multiply(a: Number, b: Number) -> Decimal:
    with decimal.localcontext(CONTEXT):
        return to_decimal(a) * to_decimal(b)


def subtract(a: Number, b: Number) -> Decimal:
    with decimal.localcontext(CONTEXT):
        return to_decimal(a) - to_decimal(b)


def power(base: Number, exponent: int) -> Decimal:
    """Raise base to a non-negative integer power."""
    if exponent < 0:
        raise ValueError("exponent must be non-negative")
    with decimal.localcontext(CONTEXT):
        return to_decimal(base) ** exponent


def pow10(exponent: int) -> Decimal:
    """Exact 10**exponent for any signed integer exponent."""
    return Decimal(1).scaleb(exponent, CONTEXT)


def scale_by_decimals(raw_amount: int, decimals: int) -> Decimal:
    """Convert a raw integer token amount to human units (raw / 10**decimals)."""
    return to_decimal(raw_amount).scaleb(-decimals, CONTEXT)


def quantize_pct(value: Decimal) -> Decimal:
    """
    Round a percentage to display precision (2 decimal places).

    Precision grows with the magnitude so extreme divergences still have
    room for both decimal places.
    """
    context = CONTEXT.copy()
    context.prec = max(PRECISION, value.adjusted() + 3)
    return value.quantize(PCT_QUANTUM, rounding=ROUND_HALF_UP, context=context)
