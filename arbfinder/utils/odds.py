"""
Odds conversion helpers.

American odds: +150 means 150 profit per 100 staked (underdog),
-200 means 200 staked per 100 profit (favorite).
Decimal odds: total return per 1 staked, stake included (always > 1).
"""

import math
from typing import Optional

from arbfinder.errors import InvalidPrice


def american_to_decimal(american: object) -> float:
    """
    Convert American odds to a decimal price.

    Raises:
        InvalidPrice: for 0, NaN/inf, booleans or non-numeric input
    """
    if isinstance(american, bool):
        raise InvalidPrice(american)
    try:
        odds = float(american)
    except (TypeError, ValueError):
        raise InvalidPrice(american) from None

    if not math.isfinite(odds) or odds == 0:
        raise InvalidPrice(american)

    if odds > 0:
        return 1 + odds / 100
    return 1 + 100 / abs(odds)


def try_american_to_decimal(american: object) -> Optional[float]:
    """Same as american_to_decimal, but None for prices the caller should drop."""
    try:
        return american_to_decimal(american)
    except InvalidPrice:
        return None


def decimal_to_probability(decimal: float) -> float:
    """Implied probability of a decimal price."""
    if decimal <= 0:
        return 0.0
    return 1 / decimal
