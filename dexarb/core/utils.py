"""Utility functions for the arbitrage monitor."""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Union

# Enough digits for any uint256 amount
_PRECISION = 80

Number = Union[Decimal, int, str]


def to_decimal(value: Number) -> Decimal:
    """Parse a display amount into a finite Decimal."""
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return amount


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Convert a display amount into integer base units, truncating dust."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = amount.scaleb(decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_base_units(amount: int, decimals: int) -> Decimal:
    """Convert integer base units into an exact display amount."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(amount).scaleb(-decimals)


def gwei_to_wei(gwei: Number) -> int:
    """Convert a gwei figure (possibly fractional) to wei."""
    return to_base_units(to_decimal(gwei), 9)


def format_usd(amount: Decimal) -> str:
    """Format USD amount with appropriate precision."""
    if abs(amount) >= 1000:
        return f"${amount:,.0f}"
    elif abs(amount) >= 10:
        return f"${amount:.2f}"
    else:
        return f"${amount:.4f}"


def format_percentage(value: Decimal) -> str:
    """Format a percentage-points value."""
    return f"{value:.4f}%"
