# backend/clinicops/domain/advance_window.py
"""
Admission window checks for a requested slot.

Checks run in a fixed order (range, past, minimum notice, maximum window)
because each failure carries its own message and callers branch on it.
"""

from datetime import datetime, timedelta
import math
from typing import Optional

from ..core.exceptions import (
    AdvanceWindowExceededException,
    InsufficientAdvanceNoticeException,
    PastSlotException,
)
from .intervals import validate_range


def lead_minutes(now: datetime, start: datetime) -> float:
    """Minutes between ``now`` and ``start`` (negative when start is past)."""
    return (start - now).total_seconds() / 60


def validate_advance_window(
    *,
    now: datetime,
    start_at: datetime,
    end_at: datetime,
    min_advance_minutes: int,
    max_advance_days: int,
    max_advance_minutes: Optional[int] = None,
) -> None:
    """
    Accept the slot or raise the exception for the first rule it breaks.

    Raises:
        InvalidRangeException: end is not after start
        PastSlotException: start is before now
        InsufficientAdvanceNoticeException: less lead time than required
        AdvanceWindowExceededException: further out than the day window,
            or than the exact minute ceiling when one is configured
    """
    validate_range(start_at, end_at)

    if start_at < now:
        raise PastSlotException(
            details={"start_at_utc": start_at.isoformat(), "now_utc": now.isoformat()}
        )

    lead = start_at - now
    provided = round(lead.total_seconds() / 60, 2)

    if lead < timedelta(minutes=min_advance_minutes):
        raise InsufficientAdvanceNoticeException(
            required_minutes=min_advance_minutes, provided_minutes=provided
        )

    if lead > timedelta(days=max_advance_days):
        raise AdvanceWindowExceededException(max_days=max_advance_days, provided_minutes=provided)

    whole_minutes = math.floor(lead_minutes(now, start_at))
    if max_advance_minutes is not None and whole_minutes > max_advance_minutes:
        raise AdvanceWindowExceededException(
            max_minutes=max_advance_minutes, provided_minutes=provided
        )
