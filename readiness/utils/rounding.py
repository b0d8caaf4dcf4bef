"""Half-up rounding.

Built-in round() rounds halves to even (round(2.5) == 2); scores and share
counts shown to users round halves up.
"""

from __future__ import annotations

import math


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to `digits` decimals with halves going up (towards +inf)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(math.floor(value + 0.5))
