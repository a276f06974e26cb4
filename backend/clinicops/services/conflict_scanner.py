# backend/clinicops/services/conflict_scanner.py
"""
Conflict Scanner for the clinic scheduling engine.

Checks a professional's calendar (blocking bookings and active holds) for
overlap with a requested window. Each record set raises its own conflict so
callers and logs can tell them apart.

The scan is read-then-act: callers run it as the last step before writing,
inside the calendar lock and the store's transaction.
"""

from datetime import datetime
import logging
from typing import Optional

from ..core.exceptions import BookingConflictException, HoldConflictException
from ..domain.intervals import intervals_overlap
from ..models.booking import BLOCKING_BOOKING_STATUSES
from ..models.booking_hold import HoldStatus
from ..repositories.protocols import BookingLookup, HoldStore

logger = logging.getLogger(__name__)


class ConflictScanner:
    def __init__(self, booking_lookup: BookingLookup, hold_store: HoldStore):
        self.booking_lookup = booking_lookup
        self.hold_store = hold_store

    def ensure_no_booking_conflict(
        self,
        tenant_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        bookings = self.booking_lookup.list_by_professional_and_range(
            tenant_id, professional_id, start_at, end_at, exclude_booking_id=exclude_booking_id
        )
        conflicting = [
            b
            for b in bookings
            if b.status in BLOCKING_BOOKING_STATUSES
            and b.id != exclude_booking_id
            and intervals_overlap(b.start_at_utc, b.end_at_utc, start_at, end_at)
        ]
        if conflicting:
            logger.warning(
                "Booking conflict detected",
                extra={
                    "tenant_id": tenant_id,
                    "professional_id": professional_id,
                    "conflicting_booking_ids": [b.id for b in conflicting],
                },
            )
            raise BookingConflictException(
                details={"conflicting_booking_ids": [b.id for b in conflicting]}
            )

    def ensure_no_hold_conflict(
        self,
        tenant_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
        now: datetime,
        exclude_hold_id: Optional[str] = None,
    ) -> None:
        holds = self.hold_store.find_active_overlap(
            tenant_id, professional_id, start_at, end_at, now
        )
        conflicting = [
            h
            for h in holds
            if h.status == HoldStatus.ACTIVE.value
            and h.id != exclude_hold_id
            and h.ttl_expires_at_utc > now
            and intervals_overlap(h.start_at_utc, h.end_at_utc, start_at, end_at)
        ]
        if conflicting:
            logger.warning(
                "Hold conflict detected",
                extra={
                    "tenant_id": tenant_id,
                    "professional_id": professional_id,
                    "conflicting_hold_ids": [h.id for h in conflicting],
                },
            )
            raise HoldConflictException(details={"conflicting_hold_ids": [h.id for h in conflicting]})

    def ensure_available(
        self,
        tenant_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
        now: datetime,
        *,
        exclude_booking_id: Optional[str] = None,
        exclude_hold_id: Optional[str] = None,
    ) -> None:
        """Raise BookingConflictException or HoldConflictException on any overlap."""
        self.ensure_no_booking_conflict(
            tenant_id, professional_id, start_at, end_at, exclude_booking_id=exclude_booking_id
        )
        self.ensure_no_hold_conflict(
            tenant_id, professional_id, start_at, end_at, now, exclude_hold_id=exclude_hold_id
        )
