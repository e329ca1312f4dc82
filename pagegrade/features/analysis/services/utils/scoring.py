from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple


def round_half_up(value) -> int:
    """Round .5 away from zero (Python's round() is banker's rounding)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def scale(raw: int, max_points: int) -> int:
    """Rescale a raw point total onto 0-100."""
    if max_points <= 0:
        return 0
    return round_half_up(Decimal(raw) * 100 / Decimal(max_points))


def weighted_score(parts: Iterable[Tuple[int, str]]) -> int:
    """
    Weighted composite of (score, weight) pairs.

    Weights are passed as strings so the sum is computed exactly, e.g.
    ``weighted_score([(88, "0.4"), (100, "0.2"), ...])``.
    """
    total = sum(Decimal(score) * Decimal(weight) for score, weight in parts)
    return round_half_up(total)
