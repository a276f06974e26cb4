# backend/clinicops/services/booking_service.py
"""
Booking Service for the clinic scheduling engine.

Handles the confirmed-booking state machine:
- Creating a booking by consuming a hold
- Confirmation, completion and no-show marking
- Cancellation
- Payment status recording (a parallel attribute, not a booking state)
- Rescheduling with a fresh conflict scan

Every mutation carries the caller's last-seen version; a stale version
raises VersionConflictException, never a business-rule error.
"""

from datetime import datetime, timedelta
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.calendar_lock import calendar_lock
from ..core.config import settings
from ..core.exceptions import (
    CalendarBusyException,
    ConflictException,
    InvalidStateException,
    NotFoundException,
    PastSlotException,
)
from ..core.timezone_utils import ensure_utc
from ..domain.intervals import validate_range
from ..events.publisher import EventPublisher, Publisher
from ..events.scheduling_events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    BookingNoShow,
    BookingRescheduled,
    PaymentStatusChanged,
)
from ..models.booking import (
    CANCELABLE_BOOKING_STATUSES,
    PAID_PAYMENT_STATUSES,
    TERMINAL_BOOKING_STATUSES,
    Booking,
    BookingSource,
    BookingStatus,
    PaymentStatus,
)
from ..models.booking_hold import HoldStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Requester
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .access_policy import (
    ensure_can_act_on_calendar,
    ensure_can_cancel_booking,
    ensure_can_create_holds,
    ensure_can_record_payment,
    ensure_can_view_booking,
)
from .base import BaseService, Clock
from .conflict_scanner import ConflictScanner
from .hold_service import CalendarLockFactory, HoldService

logger = logging.getLogger(__name__)


class BookingService(BaseService):
    """Service for booking lifecycle transitions."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        *,
        booking_repository: Optional[BookingRepository] = None,
        hold_service: Optional[HoldService] = None,
        event_publisher: Optional[Publisher] = None,
        lock_factory: Optional[CalendarLockFactory] = None,
    ):
        super().__init__(db, clock)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )
        self.hold_service = hold_service or HoldService(
            db,
            self.clock,
            booking_lookup=self.booking_repository,
            event_publisher=self.event_publisher,
            lock_factory=lock_factory,
        )
        self.conflict_scanner = ConflictScanner(
            self.booking_repository, self.hold_service.hold_repository
        )
        self.lock_factory: CalendarLockFactory = lock_factory or calendar_lock

    def get_booking(self, tenant_id: str, booking_id: str) -> Booking:
        booking = self.booking_repository.get(tenant_id, booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def read_booking(self, requester: Requester, booking_id: str) -> Booking:
        """Load a booking the requester is allowed to see."""
        booking = self.get_booking(requester.tenant_id, booking_id)
        ensure_can_view_booking(requester, booking.patient_id, *self._professional_ids(booking))
        return booking

    def _professional_ids(self, booking: Booking) -> tuple[str, Optional[str]]:
        return booking.professional_id, booking.original_professional_id

    @BaseService.measure_operation("create_booking_from_hold")
    def create_booking_from_hold(
        self,
        requester: Requester,
        hold_id: str,
        *,
        expected_hold_version: Optional[int] = None,
        source: str = BookingSource.CLINIC_PORTAL.value,
        payment_status: Optional[str] = None,
        late_tolerance_minutes: Optional[int] = None,
    ) -> Booking:
        """
        Promote an active hold into a scheduled booking.

        The hold flips to consumed and the booking is inserted in the same
        transaction, so a hold can back at most one booking.

        Raises:
            NotFoundException: hold missing
            ConflictException: hold already used, or calendar taken meanwhile
            InvalidStateException: hold cancelled or expired
            VersionConflictException: hold changed since the caller read it
        """
        tenant_id = requester.tenant_id
        ensure_can_create_holds(requester)
        hold = self.hold_service.get_hold(tenant_id, hold_id)
        ensure_can_act_on_calendar(requester, hold.professional_id, hold.original_professional_id)

        if (
            hold.status == HoldStatus.CONSUMED.value
            or self.booking_repository.get_by_hold_id(tenant_id, hold.id) is not None
        ):
            raise ConflictException(
                "Hold was already used to create a booking", code="HOLD_ALREADY_CONSUMED"
            )

        now = self.now()
        with self.lock_factory(tenant_id, hold.professional_id) as acquired:
            if not acquired:
                raise CalendarBusyException(hold.professional_id)
            with self.transaction():
                self.hold_service.hold_repository.lock_professional_calendar(
                    tenant_id, hold.professional_id
                )
                self.conflict_scanner.ensure_no_booking_conflict(
                    tenant_id, hold.professional_id, hold.start_at_utc, hold.end_at_utc
                )
                consumed = self.hold_service.consume_hold(
                    hold,
                    expected_hold_version if expected_hold_version is not None else hold.version,
                )
                booking = self.booking_repository.create(
                    tenant_id=tenant_id,
                    clinic_id=consumed.clinic_id,
                    professional_id=consumed.professional_id,
                    original_professional_id=consumed.original_professional_id,
                    coverage_id=consumed.coverage_id,
                    patient_id=consumed.patient_id,
                    service_type_id=consumed.service_type_id,
                    hold_id=consumed.id,
                    source=source,
                    start_at_utc=consumed.start_at_utc,
                    end_at_utc=consumed.end_at_utc,
                    status=BookingStatus.SCHEDULED.value,
                    payment_status=payment_status or PaymentStatus.PENDING.value,
                    late_tolerance_minutes=(
                        late_tolerance_minutes
                        if late_tolerance_minutes is not None
                        else settings.booking_late_tolerance_minutes
                    ),
                    version=1,
                )
                self.event_publisher.publish(
                    BookingCreated(
                        tenant_id=tenant_id,
                        booking_id=booking.id,
                        hold_id=consumed.id,
                        clinic_id=booking.clinic_id,
                        professional_id=booking.professional_id,
                        original_professional_id=booking.original_professional_id,
                        coverage_id=booking.coverage_id,
                        patient_id=booking.patient_id,
                        service_type_id=booking.service_type_id,
                        start_at_utc=booking.start_at_utc,
                        end_at_utc=booking.end_at_utc,
                        occurred_at=now,
                    )
                )

        prometheus_metrics.record_booking_transition("created")
        self.logger.info(
            "Booking created from hold",
            extra={"tenant_id": tenant_id, "booking_id": booking.id, "hold_id": hold.id},
        )
        return booking

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(
        self, requester: Requester, booking_id: str, expected_version: int
    ) -> Booking:
        booking = self.get_booking(requester.tenant_id, booking_id)
        ensure_can_act_on_calendar(requester, *self._professional_ids(booking))

        if booking.status != BookingStatus.SCHEDULED.value:
            raise InvalidStateException(
                f"Only scheduled bookings can be confirmed (status: {booking.status})"
            )
        if booking.payment_status not in PAID_PAYMENT_STATUSES:
            raise InvalidStateException(
                "Payment must be approved before confirming the booking",
                details={"payment_status": booking.payment_status},
            )

        now = self.now()
        with self.transaction():
            updated = self.booking_repository.update_versioned(
                booking.id,
                expected_version,
                tenant_id=requester.tenant_id,
                status=BookingStatus.CONFIRMED.value,
            )
            self.event_publisher.publish(
                BookingConfirmed(
                    tenant_id=updated.tenant_id,
                    booking_id=updated.id,
                    clinic_id=updated.clinic_id,
                    professional_id=updated.professional_id,
                    patient_id=updated.patient_id,
                    payment_status=updated.payment_status,
                    occurred_at=now,
                )
            )
        prometheus_metrics.record_booking_transition("confirmed")
        return updated

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        requester: Requester,
        booking_id: str,
        expected_version: int,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Cancel a scheduled or confirmed booking.

        Raises:
            NotFoundException: booking missing
            ForbiddenException: caller may not cancel this booking
            InvalidStateException: booking is not cancelable
            VersionConflictException: stale ``expected_version``
        """
        booking = self.get_booking(requester.tenant_id, booking_id)
        ensure_can_cancel_booking(requester, booking.patient_id, *self._professional_ids(booking))

        if booking.status not in CANCELABLE_BOOKING_STATUSES:
            raise InvalidStateException(
                f"Booking cannot be cancelled in status {booking.status}",
                details={"status": booking.status},
            )

        previous_status = booking.status
        now = self.now()
        with self.transaction():
            updated = self.booking_repository.update_versioned(
                booking.id,
                expected_version,
                tenant_id=requester.tenant_id,
                status=BookingStatus.CANCELLED.value,
                cancellation_reason=reason,
                cancelled_by_id=requester.user_id,
                cancelled_at=now,
            )
            self.event_publisher.publish(
                BookingCancelled(
                    tenant_id=updated.tenant_id,
                    booking_id=updated.id,
                    clinic_id=updated.clinic_id,
                    professional_id=updated.professional_id,
                    patient_id=updated.patient_id,
                    cancelled_by=requester.user_id,
                    previous_status=previous_status,
                    reason=reason,
                    original_professional_id=updated.original_professional_id,
                    coverage_id=updated.coverage_id,
                    occurred_at=now,
                )
            )
        prometheus_metrics.record_booking_transition("cancelled")
        self.logger.info(
            "Booking cancelled",
            extra={"booking_id": booking.id, "by": requester.user_id, "reason": reason},
        )
        return updated

    @BaseService.measure_operation("record_payment_status")
    def record_payment_status(
        self,
        requester: Requester,
        booking_id: str,
        expected_version: int,
        payment_status: PaymentStatus,
    ) -> Booking:
        """
        Record a new payment status for a booking.

        Terminal bookings reject any change. Recording the current value again
        is a no-op: the booking is returned unchanged and nothing is published.
        """
        ensure_can_record_payment(requester)
        booking = self.get_booking(requester.tenant_id, booking_id)

        if booking.status in TERMINAL_BOOKING_STATUSES:
            raise InvalidStateException(
                f"Payment status cannot change once the booking is {booking.status}",
                details={"status": booking.status},
            )

        new_status = PaymentStatus(payment_status).value
        if booking.payment_status == new_status:
            self.logger.info(
                "Payment status unchanged; nothing to record",
                extra={"booking_id": booking.id, "payment_status": new_status},
            )
            return booking

        previous_status = booking.payment_status
        now = self.now()
        with self.transaction():
            updated = self.booking_repository.update_versioned(
                booking.id,
                expected_version,
                tenant_id=requester.tenant_id,
                payment_status=new_status,
            )
            self.event_publisher.publish(
                PaymentStatusChanged(
                    tenant_id=updated.tenant_id,
                    booking_id=updated.id,
                    clinic_id=updated.clinic_id,
                    professional_id=updated.professional_id,
                    patient_id=updated.patient_id,
                    previous_status=previous_status,
                    new_status=new_status,
                    changed_by=requester.user_id,
                    occurred_at=now,
                )
            )
        prometheus_metrics.record_booking_transition(f"payment_{new_status}")
        return updated

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(self, requester: Requester, booking_id: str, expected_version: int) -> Booking:
        booking = self.get_booking(requester.tenant_id, booking_id)
        ensure_can_act_on_calendar(requester, *self._professional_ids(booking))

        if booking.status != BookingStatus.CONFIRMED.value:
            raise InvalidStateException(
                f"Only confirmed bookings can be marked as no-show (status: {booking.status})"
            )
        now = self.now()
        tolerance = booking.late_tolerance_minutes or 0
        if now < booking.start_at_utc + timedelta(minutes=tolerance):
            raise InvalidStateException(
                f"No-show can only be marked {tolerance} minutes after the start time",
                details={"start_at_utc": booking.start_at_utc.isoformat()},
            )

        with self.transaction():
            updated = self.booking_repository.update_versioned(
                booking.id,
                expected_version,
                tenant_id=requester.tenant_id,
                status=BookingStatus.NO_SHOW.value,
                no_show_marked_at=now,
            )
            self.event_publisher.publish(
                BookingNoShow(
                    tenant_id=updated.tenant_id,
                    booking_id=updated.id,
                    clinic_id=updated.clinic_id,
                    professional_id=updated.professional_id,
                    patient_id=updated.patient_id,
                    marked_by=requester.user_id,
                    marked_at=now,
                    occurred_at=now,
                )
            )
        prometheus_metrics.record_booking_transition("no_show")
        return updated

    @BaseService.measure_operation("complete_booking")
    def complete_booking(
        self, requester: Requester, booking_id: str, expected_version: int
    ) -> Booking:
        booking = self.get_booking(requester.tenant_id, booking_id)
        ensure_can_act_on_calendar(requester, *self._professional_ids(booking))

        if booking.status not in (BookingStatus.CONFIRMED.value, BookingStatus.IN_PROGRESS.value):
            raise InvalidStateException(
                f"Booking cannot be completed in status {booking.status}",
                details={"status": booking.status},
            )
        if booking.payment_status not in PAID_PAYMENT_STATUSES:
            raise InvalidStateException(
                "Payment must be approved before completing the booking",
                details={"payment_status": booking.payment_status},
            )

        now = self.now()
        with self.transaction():
            updated = self.booking_repository.update_versioned(
                booking.id,
                expected_version,
                tenant_id=requester.tenant_id,
                status=BookingStatus.COMPLETED.value,
                completed_at=now,
            )
            self.event_publisher.publish(
                BookingCompleted(
                    tenant_id=updated.tenant_id,
                    booking_id=updated.id,
                    clinic_id=updated.clinic_id,
                    professional_id=updated.professional_id,
                    patient_id=updated.patient_id,
                    completed_by=requester.user_id,
                    completed_at=now,
                    occurred_at=now,
                )
            )
        prometheus_metrics.record_booking_transition("completed")
        return updated

    @BaseService.measure_operation("reschedule_booking")
    def reschedule_booking(
        self,
        requester: Requester,
        booking_id: str,
        expected_version: int,
        *,
        start_at: datetime,
        end_at: datetime,
    ) -> Booking:
        """
        Move a booking to a new window on the same professional's calendar.

        The booking itself is excluded from the conflict scan; other bookings
        and active holds still block.
        """
        start_at = ensure_utc(start_at)
        end_at = ensure_utc(end_at)
        validate_range(start_at, end_at)

        booking = self.get_booking(requester.tenant_id, booking_id)
        ensure_can_act_on_calendar(requester, *self._professional_ids(booking))

        if booking.status not in CANCELABLE_BOOKING_STATUSES:
            raise InvalidStateException(
                f"Booking cannot be rescheduled in status {booking.status}",
                details={"status": booking.status},
            )
        now = self.now()
        if start_at < now:
            raise PastSlotException("Cannot reschedule into the past")

        previous_start, previous_end = booking.start_at_utc, booking.end_at_utc
        tenant_id = requester.tenant_id
        with self.lock_factory(tenant_id, booking.professional_id) as acquired:
            if not acquired:
                raise CalendarBusyException(booking.professional_id)
            with self.transaction():
                self.hold_service.hold_repository.lock_professional_calendar(
                    tenant_id, booking.professional_id
                )
                self.conflict_scanner.ensure_available(
                    tenant_id,
                    booking.professional_id,
                    start_at,
                    end_at,
                    now,
                    exclude_booking_id=booking.id,
                )
                updated = self.booking_repository.update_versioned(
                    booking.id,
                    expected_version,
                    tenant_id=tenant_id,
                    start_at_utc=start_at,
                    end_at_utc=end_at,
                )
                self.event_publisher.publish(
                    BookingRescheduled(
                        tenant_id=tenant_id,
                        booking_id=updated.id,
                        clinic_id=updated.clinic_id,
                        professional_id=updated.professional_id,
                        patient_id=updated.patient_id,
                        rescheduled_by=requester.user_id,
                        previous_start_at_utc=previous_start,
                        previous_end_at_utc=previous_end,
                        start_at_utc=start_at,
                        end_at_utc=end_at,
                        occurred_at=now,
                    )
                )
        prometheus_metrics.record_booking_transition("rescheduled")
        return updated
