"""
Discount percentage derivation shared by the priced content kinds.
"""
from typing import Optional

ROUNDING_FLOOR = "floor"
ROUNDING_ROUND = "round"


def compute_discount_percent(price_cents: int, discounted_cents: int, rounding: str = ROUNDING_FLOOR) -> int:
    """
    Derive the integer discount percentage from price and discounted price.

    Works in integer arithmetic so that e.g. 29% off is never floored to 28
    by float error.

    Args:
        price_cents: List price in minor currency units
        discounted_cents: Sale price in minor currency units
        rounding: "floor" truncates, "round" rounds half up

    Returns:
        Percentage clamped into [0, 100]; 0 when price_cents <= 0
    """
    if price_cents <= 0:
        return 0
    saved = (price_cents - discounted_cents) * 100
    if rounding == ROUNDING_FLOOR:
        pct = saved // price_cents
    elif rounding == ROUNDING_ROUND:
        pct = (2 * saved + price_cents) // (2 * price_cents)
    else:
        raise ValueError(f"Unknown rounding '{rounding}'. Must be one of: floor, round")
    return max(0, min(100, pct))


def discount_within_tolerance(provided: Optional[int], computed: int, tolerance: int) -> bool:
    """
    Check a client-supplied discountPercent against the derived value.

    A tolerance of 0 is the strict policy (exact match required).
    A missing value always passes since the server value is used anyway.
    """
    if provided is None:
        return True
    return abs(provided - computed) <= tolerance
