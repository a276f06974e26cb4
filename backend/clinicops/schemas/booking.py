"""Booking request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from ..models.booking import BookingSource, PaymentStatus
from ._strict_base import StrictModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """Create a booking by consuming an active hold."""

    hold_id: str
    expected_hold_version: Optional[int] = Field(None, ge=1)
    source: BookingSource = BookingSource.CLINIC_PORTAL
    payment_status: Optional[PaymentStatus] = None
    late_tolerance_minutes: Optional[int] = Field(None, ge=0, le=240)


class BookingVersioned(StrictRequestModel):
    """Body for transitions that only need the caller's last-seen version."""

    expected_version: int = Field(..., ge=1)


class BookingCancel(BookingVersioned):
    reason: Optional[str] = Field(None, max_length=500)


class BookingPaymentStatusUpdate(BookingVersioned):
    payment_status: PaymentStatus


class BookingReschedule(BookingVersioned):
    start_at_utc: datetime
    end_at_utc: datetime


class BookingResponse(StrictModel):
    id: str
    tenant_id: str
    clinic_id: str
    professional_id: str
    original_professional_id: Optional[str] = None
    coverage_id: Optional[str] = None
    patient_id: str
    service_type_id: Optional[str] = None
    hold_id: Optional[str] = None
    source: str
    start_at_utc: datetime
    end_at_utc: datetime
    status: str
    payment_status: str
    late_tolerance_minutes: int
    cancellation_reason: Optional[str] = None
    cancelled_by_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    no_show_marked_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int
