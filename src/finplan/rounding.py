"""Rounding helpers matching browser number formatting.

Python's built-in ``round`` rounds half to even, which disagrees with the
figures users see in the web client. These helpers reproduce the client's
behaviour so that persisted numbers and rendered strings line up.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal


def js_round(value: float) -> int:
    """Round half towards positive infinity (``-2.5`` becomes ``-2``)."""
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int = 0) -> float:
    """Round to ``digits`` decimals with :func:`js_round` semantics."""
    factor = 10**digits
    return js_round(value * factor) / factor


def to_fixed(value: float, digits: int = 0) -> str:
    """Format with a fixed number of decimals.

    Rounds half away from zero on the exact binary value of ``value``, so
    ``to_fixed(1.005, 2)`` is ``"1.00"`` while ``to_fixed(1.25, 1)`` is
    ``"1.3"``.
    """
    quantum = Decimal(1).scaleb(-digits)
    result = Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)
    if result == 0:
        result = abs(result)
    return f"{result:.{digits}f}"


def round_half_away(value: float, digits: int = 0) -> Decimal:
    """Round the shortest decimal form of ``value`` half away from zero."""
    quantum = Decimal(1).scaleb(-digits)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
