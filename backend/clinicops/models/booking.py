# backend/clinicops/models/booking.py
"""
Booking model for the clinic scheduling engine.

A booking is the confirmed commitment between a patient and a professional.
It is usually created by consuming a hold, but may also arrive directly
(e.g. from an external calendar sync). Status and payment status are two
independent attributes: payment never becomes a sub-state of the booking.

Every mutation goes through a version-checked UPDATE so concurrent writers
fail with a VersionConflict instead of silently overwriting each other.
"""

from enum import Enum
import logging
from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text
import ulid

from ..database import Base
from .types import TimestampMixin, UTCDateTime

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    SCHEDULED = "scheduled"  # Created from a hold, awaiting confirmation
    CONFIRMED = "confirmed"  # Payment approved, slot committed
    IN_PROGRESS = "in_progress"  # Appointment under way
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"  # Patient didn't attend


class PaymentStatus(str, Enum):
    """Payment statuses, tracked in parallel to the booking status."""

    NOT_APPLIED = "not_applied"
    PENDING = "pending"
    APPROVED = "approved"
    SETTLED = "settled"
    REFUNDED = "refunded"
    DISPUTED = "disputed"
    CHARGEBACK = "chargeback"
    FAILED = "failed"


# Statuses that occupy the professional's calendar
BLOCKING_BOOKING_STATUSES = (
    BookingStatus.SCHEDULED.value,
    BookingStatus.CONFIRMED.value,
    BookingStatus.IN_PROGRESS.value,
    BookingStatus.COMPLETED.value,
)

CANCELABLE_BOOKING_STATUSES = frozenset(
    {BookingStatus.SCHEDULED.value, BookingStatus.CONFIRMED.value}
)

TERMINAL_BOOKING_STATUSES = frozenset(
    {
        BookingStatus.CANCELLED.value,
        BookingStatus.NO_SHOW.value,
        BookingStatus.COMPLETED.value,
    }
)

PAID_PAYMENT_STATUSES = frozenset({PaymentStatus.APPROVED.value, PaymentStatus.SETTLED.value})


class BookingSource(str, Enum):
    CLINIC_PORTAL = "clinic_portal"
    PROFESSIONAL_PORTAL = "professional_portal"
    PATIENT_PORTAL = "patient_portal"
    MARKETPLACE = "marketplace"
    API = "api"


class Booking(TimestampMixin, Base):
    """Confirmed commitment on a professional's calendar."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False)
    clinic_id = Column(String(26), ForeignKey("clinics.id"), nullable=False)
    professional_id = Column(String(64), nullable=False)
    original_professional_id = Column(String(64), nullable=True)
    coverage_id = Column(String(26), nullable=True)
    patient_id = Column(String(64), nullable=False)
    service_type_id = Column(String(26), nullable=True)
    hold_id = Column(String(26), ForeignKey("booking_holds.id"), nullable=True, unique=True)
    source = Column(String(30), nullable=False, default=BookingSource.CLINIC_PORTAL.value)

    start_at_utc = Column(UTCDateTime(), nullable=False)
    end_at_utc = Column(UTCDateTime(), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.SCHEDULED.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    late_tolerance_minutes = Column(Integer, nullable=False, default=15)

    cancellation_reason = Column(Text, nullable=True)
    cancelled_by_id = Column(String(64), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    no_show_marked_at = Column(UTCDateTime(), nullable=True)
    completed_at = Column(UTCDateTime(), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('not_applied', 'pending', 'approved', 'settled', "
            "'refunded', 'disputed', 'chargeback', 'failed')",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint("end_at_utc > start_at_utc", name="ck_bookings_range"),
        CheckConstraint("version >= 1", name="ck_bookings_version"),
        Index(
            "ix_bookings_professional_window",
            "tenant_id",
            "professional_id",
            "start_at_utc",
            "end_at_utc",
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.SCHEDULED.value
        if not self.payment_status:
            self.payment_status = PaymentStatus.PENDING.value
        if not self.version:
            self.version = 1
        logger.debug(
            f"Creating booking for patient {self.patient_id} with professional {self.professional_id}"
        )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: patient={self.patient_id}, "
            f"professional={self.professional_id}, "
            f"[{self.start_at_utc}, {self.end_at_utc}), status={self.status}, "
            f"payment={self.payment_status}, v{self.version}>"
        )
