# backend/clinicops/domain/intervals.py
"""
Half-open interval helpers.

Intervals are ``[start, end)``: touching endpoints do not overlap.
"""

from datetime import datetime

from ..core.exceptions import InvalidRangeException


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """True when ``[a_start, a_end)`` and ``[b_start, b_end)`` intersect."""
    return a_start < b_end and a_end > b_start


def validate_range(start: datetime, end: datetime) -> None:
    """Raise InvalidRangeException unless ``end`` is strictly after ``start``."""
    if end <= start:
        raise InvalidRangeException(
            details={"start_at_utc": start.isoformat(), "end_at_utc": end.isoformat()}
        )
