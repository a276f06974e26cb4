# backend/clinicops/domain/hold_ttl.py
from datetime import datetime, timedelta

START_MARGIN = timedelta(minutes=1)


def compute_hold_expiry(start_at: datetime, now: datetime, ttl_minutes: int) -> datetime:
    """
    Expiry instant for a hold created at ``now``.

    ``now + ttl`` capped one minute before the slot starts, and never earlier
    than ``now`` itself (a slot starting within the minute gets a zero TTL).
    """
    expiry = now + timedelta(minutes=max(ttl_minutes, 0))
    expiry = min(expiry, start_at - START_MARGIN)
    return max(expiry, now)
