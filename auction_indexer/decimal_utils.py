"""Shared high-precision Decimal utilities for price and volume arithmetic.

Ledger amounts are uint256 base units. Ratios are computed with a
high-precision context and only converted to float at the very end.
"""

from __future__ import annotations

import decimal
from decimal import Decimal

# 78 digits of precision, enough for uint256 values (up to ~10^77)
DECIMAL_HIGH_PREC_CONTEXT = decimal.Context(prec=78)


def exact_ratio(numerator: int, denominator: int) -> Decimal | None:
    """Return numerator / denominator, or None when the denominator is zero."""
    if denominator == 0:
        return None
    with decimal.localcontext(DECIMAL_HIGH_PREC_CONTEXT):
        return Decimal(numerator) / Decimal(denominator)


def scale_down(amount: Decimal | int, decimals: int) -> Decimal:
    """Convert base units to human units for a token with `decimals`."""
    with decimal.localcontext(DECIMAL_HIGH_PREC_CONTEXT):
        return Decimal(amount) / (Decimal(10) ** decimals)


def multiply(*factors: Decimal | float | int) -> Decimal:
    """Multiply factors exactly, converting floats through their repr."""
    with decimal.localcontext(DECIMAL_HIGH_PREC_CONTEXT):
        result = Decimal(1)
        for factor in factors:
            if isinstance(factor, float):
                factor = Decimal(repr(factor))
            result *= Decimal(factor)
        return result


__all__ = [
    "DECIMAL_HIGH_PREC_CONTEXT",
    "exact_ratio",
    "scale_down",
    "multiply",
]
