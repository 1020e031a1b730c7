"""Fixed-point and guarded decimal arithmetic."""
from __future__ import annotations

from decimal import Context, Decimal

# Wide enough for 36-decimal share token supplies without rounding.
CONTEXT = Context(prec=80)

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)

XTZ_DECIMALS = 6
KUSD_DECIMALS = 18
SHARE_TOKEN_DECIMALS = 36


def fixed_to_decimal(fixed: int | Decimal, decimals: int) -> Decimal:
    """Convert a fixed-point integer with ``decimals`` places to a Decimal."""
    return CONTEXT.scaleb(Decimal(fixed), -decimals)


def safe_div(numerator: Decimal | int, denominator: Decimal | int) -> Decimal:
    """Divide, resolving a zero denominator to zero."""
    denominator = Decimal(denominator)
    if denominator == ZERO:
        return ZERO
    return CONTEXT.divide(Decimal(numerator), denominator)


def mul(a: Decimal | int, b: Decimal | int) -> Decimal:
    return CONTEXT.multiply(Decimal(a), Decimal(b))


def add(*values: Decimal | int) -> Decimal:
    total = ZERO
    for value in values:
        total = CONTEXT.add(total, Decimal(value))
    return total


def to_metric(value: Decimal | int) -> float:
    """Convert to float at the metrics boundary. Nothing upstream uses floats."""
    return float(value)


def decimal_to_str(value: Decimal | int) -> str:
    """Plain (non-exponent) string with trailing zeros dropped."""
    if isinstance(value, int):
        return str(value)
    return format(value.normalize(CONTEXT), "f")
