# backend/clinicops/repositories/hold_repository.py
"""
Hold store for the clinic scheduling engine.

Besides the overlap query, the store owns calendar exclusivity: on PostgreSQL
``lock_professional_calendar`` takes a transaction-scoped advisory lock keyed
by (tenant, professional), so two transactions can't both pass the conflict
scan and insert. SQLite serialises writers on its own.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking_hold import BookingHold, HoldStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class HoldRepository(BaseRepository[BookingHold]):
    def __init__(self, db: Session):
        super().__init__(db, BookingHold)

    def get(self, tenant_id: str, hold_id: str) -> Optional[BookingHold]:
        try:
            return (
                self.db.query(BookingHold)
                .filter(BookingHold.tenant_id == tenant_id, BookingHold.id == hold_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading hold {hold_id}: {str(e)}")
            raise RepositoryException(f"Failed to load hold: {str(e)}")

    def find_active_overlap(
        self,
        tenant_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
        now: datetime,
    ) -> List[BookingHold]:
        """Active, unexpired holds overlapping ``[start_at, end_at)``."""
        try:
            return (
                self.db.query(BookingHold)
                .filter(
                    BookingHold.tenant_id == tenant_id,
                    BookingHold.professional_id == professional_id,
                    BookingHold.status == HoldStatus.ACTIVE.value,
                    BookingHold.ttl_expires_at_utc > now,
                    BookingHold.start_at_utc < end_at,
                    BookingHold.end_at_utc > start_at,
                )
                .order_by(BookingHold.start_at_utc.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding overlapping holds for {professional_id}: {str(e)}")
            raise RepositoryException(f"Failed to find overlapping holds: {str(e)}")

    def list_due_for_expiry(self, now: datetime, limit: int = 500) -> List[BookingHold]:
        """Active holds whose TTL has passed, oldest first."""
        try:
            return (
                self.db.query(BookingHold)
                .filter(
                    BookingHold.status == HoldStatus.ACTIVE.value,
                    BookingHold.ttl_expires_at_utc <= now,
                )
                .order_by(BookingHold.ttl_expires_at_utc.asc(), BookingHold.id.asc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing expired holds: {str(e)}")
            raise RepositoryException(f"Failed to list expired holds: {str(e)}")

    def lock_professional_calendar(self, tenant_id: str, professional_id: str) -> None:
        """Serialise scan-then-insert for one professional until the transaction ends."""
        if self.dialect_name != "postgresql":
            return
        try:
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": f"calendar:{tenant_id}:{professional_id}"},
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking calendar for {professional_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock professional calendar: {str(e)}")
