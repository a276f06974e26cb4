# backend/clinicops/repositories/booking_repository.py
"""
Booking Repository for the clinic scheduling engine.

Conflict queries use the booking's own UTC interval and the blocking
status set; cancelled and no-show bookings never occupy the calendar.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import BLOCKING_BOOKING_STATUSES, Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        try:
            return (
                self.db.query(Booking)
                .filter(Booking.tenant_id == tenant_id, Booking.id == booking_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def get_by_hold_id(self, tenant_id: str, hold_id: str) -> Optional[Booking]:
        try:
            return (
                self.db.query(Booking)
                .filter(Booking.tenant_id == tenant_id, Booking.hold_id == hold_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking for hold {hold_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def list_by_professional_and_range(
        self,
        tenant_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Blocking bookings for the professional overlapping ``[start_at, end_at)``.

        Args:
            tenant_id: Tenant scope
            professional_id: Effective professional
            start_at: Window start (UTC)
            end_at: Window end (UTC, exclusive)
            exclude_booking_id: Booking to ignore (used when rescheduling)

        Returns:
            Overlapping bookings ordered by start
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.tenant_id == tenant_id,
                Booking.professional_id == professional_id,
                Booking.status.in_(BLOCKING_BOOKING_STATUSES),
                Booking.start_at_utc < end_at,
                Booking.end_at_utc > start_at,
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)
            return query.order_by(Booking.start_at_utc.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for {professional_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")
