"""Monetary rounding helpers.

All amounts are integers in the trip currency. Derived values are rounded
half-up so repeated derivations never drift through silent truncation.
"""

import math
from decimal import ROUND_HALF_UP, Decimal


def round_money(value: float | int | Decimal) -> int:
    """Round a monetary value to the nearest whole unit (half-up)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def coerce_money(value: object) -> int:
    """Coerce a loosely typed upstream amount to a non-negative integer.

    Non-numeric or non-finite values (including booleans) become 0.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(0, round_money(value))
