# backend/clinicops/routes/v1/bookings.py
"""
Booking routes - API v1

All business logic delegated to BookingService.

Endpoints:
    POST / - Create a booking from an active hold
    GET /{booking_id} - Booking details
    POST /{booking_id}/confirm - Confirm a scheduled, paid booking
    POST /{booking_id}/cancel - Cancel a booking
    POST /{booking_id}/payment-status - Record a payment status
    POST /{booking_id}/no-show - Mark a confirmed booking as no-show
    POST /{booking_id}/complete - Mark a booking as completed
    POST /{booking_id}/reschedule - Move a booking to a new window
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Body, Depends, Path, status

from ...api.dependencies import get_booking_service, get_requester
from ...core.exceptions import DomainException
from ...principal import Requester
from ...schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingPaymentStatusUpdate,
    BookingReschedule,
    BookingResponse,
    BookingVersioned,
)
from ...services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Hold not found"}, 409: {"description": "Hold already used"}},
)
async def create_booking(
    payload: BookingCreate = Body(...),
    requester: Requester = Depends(get_requester),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            lambda: booking_service.create_booking_from_hold(
                requester,
                payload.hold_id,
                expected_hold_version=payload.expected_hold_version,
                source=payload.source.value,
                payment_status=payload.payment_status.value if payload.payment_status else None,
                late_tolerance_minutes=payload.late_tolerance_minutes,
            )
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    requester: Requester = Depends(get_requester),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.read_booking, requester, booking_id)
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: BookingVersioned = Body(...),
    requester: Requester = Depends(get_requester),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.confirm_booking, requester, booking_id, payload.expected_version
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: BookingCancel = Body(...),
    requester: Requester = Depends(get_requester),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Cancel a booking."""
    try:
        booking = await asyncio.to_thread(
            booking_service.cancel_booking,
            requester,
            booking_id,
            payload.expected_version,
            payload.reason,
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/payment-status", response_model=BookingResponse)
async def record_payment_status(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: BookingPaymentStatusUpdate = Body(...),
    requester: Requester = Depends(get_requester),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Record a payment status.

    Re-sending the current status returns the booking unchanged.
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.record_payment_status,
            requester,
            booking_id,
            payload.expected_version,
            payload.payment_status,
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
async def mark_booking_no_show(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: BookingVersioned = Body(...),
    requester: Requester = Depends(get_requester),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.mark_no_show, requester, booking_id, payload.expected_version
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: BookingVersioned = Body(...),
    requester: Requester = Depends(get_requester),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.complete_booking, requester, booking_id, payload.expected_version
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{booking_id}/reschedule",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found"}, 409: {"description": "Time conflict"}},
)
async def reschedule_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: BookingReschedule = Body(...),
    requester: Requester = Depends(get_requester),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            lambda: booking_service.reschedule_booking(
                requester,
                booking_id,
                payload.expected_version,
                start_at=payload.start_at_utc,
                end_at=payload.end_at_utc,
            )
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)
