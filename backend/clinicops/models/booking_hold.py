# backend/clinicops/models/booking_hold.py
"""
Booking hold model.

A hold is a short-lived reservation placeholder that blocks a professional's
slot until it is promoted to a booking, cancelled, or its TTL passes.
``professional_id`` is always the effective professional (after coverage
substitution); the original professional and coverage id are kept for audit.
"""

from datetime import datetime
from enum import Enum
import logging
from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
import ulid

from ..database import Base
from .types import TimestampMixin, UTCDateTime

logger = logging.getLogger(__name__)


class HoldStatus(str, Enum):
    """Hold lifecycle statuses. Everything except ACTIVE is terminal."""

    ACTIVE = "active"
    CONSUMED = "consumed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class BookingHold(TimestampMixin, Base):
    """Time-boxed reservation of a professional's slot."""

    __tablename__ = "booking_holds"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False)
    clinic_id = Column(String(26), ForeignKey("clinics.id"), nullable=False)
    professional_id = Column(String(64), nullable=False)
    original_professional_id = Column(String(64), nullable=True)
    coverage_id = Column(String(26), nullable=True)
    patient_id = Column(String(64), nullable=False)
    service_type_id = Column(String(26), nullable=True)

    start_at_utc = Column(UTCDateTime(), nullable=False)
    end_at_utc = Column(UTCDateTime(), nullable=False)
    ttl_expires_at_utc = Column(UTCDateTime(), nullable=False)

    status = Column(String(20), nullable=False, default=HoldStatus.ACTIVE.value)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'consumed', 'expired', 'cancelled')",
            name="ck_booking_holds_status",
        ),
        CheckConstraint("end_at_utc > start_at_utc", name="ck_booking_holds_range"),
        CheckConstraint("version >= 1", name="ck_booking_holds_version"),
        Index(
            "ix_booking_holds_active_window",
            "tenant_id",
            "professional_id",
            "status",
            "start_at_utc",
            "end_at_utc",
        ),
        Index("ix_booking_holds_expiry", "status", "ttl_expires_at_utc"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = HoldStatus.ACTIVE.value
        if not self.version:
            self.version = 1

    def is_active_at(self, instant: datetime) -> bool:
        """Active and not yet past its TTL at ``instant``."""
        return self.status == HoldStatus.ACTIVE.value and self.ttl_expires_at_utc > instant

    def __repr__(self) -> str:
        return (
            f"<BookingHold {self.id}: professional={self.professional_id}, "
            f"[{self.start_at_utc}, {self.end_at_utc}), ttl={self.ttl_expires_at_utc}, "
            f"status={self.status}, v{self.version}>"
        )
