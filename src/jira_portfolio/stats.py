"""Small numeric and time helpers shared by the analytics modules."""

import math
from datetime import date, datetime, time, timezone

DAY_SECONDS = 24 * 60 * 60


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded up.

    Python's round() uses banker's rounding, which would report 12% for
    1 of 8 children done instead of 13%.
    """
    return math.floor(value + 0.5)


def round_half_up_to(value: float, ndigits: int) -> float:
    """Round to ndigits decimal places, with halves rounded up (9 / 8 gives 1.13)."""
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


def percentile(sorted_values: list, p: float):
    """Nearest-rank percentile of an ascending list. Returns 0 when empty."""
    if not sorted_values:
        return 0
    idx = math.ceil(len(sorted_values) * p / 100) - 1
    return sorted_values[max(0, idx)]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def start_of_day(d: date) -> datetime:
    """Midnight UTC at the start of a calendar date."""
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end (negative if end is earlier)."""
    return (end - start).total_seconds() / DAY_SECONDS
