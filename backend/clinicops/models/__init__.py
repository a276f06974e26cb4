# backend/clinicops/models/__init__.py
"""
SQLAlchemy models for the clinic scheduling engine.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import (
    BLOCKING_BOOKING_STATUSES,
    CANCELABLE_BOOKING_STATUSES,
    Booking,
    BookingSource,
    BookingStatus,
    PaymentStatus,
)
from .booking_hold import BookingHold, HoldStatus
from .clinic import Clinic, ClinicServiceType
from .event_outbox import EventOutbox, EventOutboxStatus
from .professional_coverage import CoverageStatus, ProfessionalCoverage

__all__ = [
    "BLOCKING_BOOKING_STATUSES",
    "CANCELABLE_BOOKING_STATUSES",
    "Booking",
    "BookingHold",
    "BookingSource",
    "BookingStatus",
    "Clinic",
    "ClinicServiceType",
    "CoverageStatus",
    "EventOutbox",
    "EventOutboxStatus",
    "HoldStatus",
    "PaymentStatus",
    "ProfessionalCoverage",
]
