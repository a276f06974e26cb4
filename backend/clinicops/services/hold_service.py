# backend/clinicops/services/hold_service.py
"""
Hold Service for the clinic scheduling engine.

Owns the hold lifecycle: creation (the full admission pipeline), explicit
cancellation, TTL expiry and consumption when a booking is created.

Creation runs, in order: authorization, settings resolution, coverage
resolution, admission window, conflict scan, TTL computation, persistence
and event publication. Any rejection aborts before the first write.
"""

from contextlib import AbstractContextManager
from datetime import datetime
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.calendar_lock import calendar_lock
from ..core.config import settings
from ..core.exceptions import (
    CalendarBusyException,
    ConflictException,
    DomainException,
    InvalidStateException,
    NotFoundException,
    VersionConflictException,
)
from ..core.timezone_utils import ensure_utc
from ..domain.advance_window import validate_advance_window
from ..domain.hold_settings import (
    ClinicHoldSettings,
    EffectiveHoldSettings,
    EngineFallbacks,
    ServiceTypeOverride,
    resolve_hold_settings,
)
from ..domain.hold_ttl import compute_hold_expiry
from ..events.publisher import EventPublisher, Publisher
from ..events.scheduling_events import HoldCancelled, HoldCreated, HoldExpired
from ..models.booking_hold import BookingHold, HoldStatus
from ..models.clinic import ClinicServiceType
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Requester
from ..repositories.factory import RepositoryFactory
from ..repositories.hold_repository import HoldRepository
from ..repositories.protocols import (
    BookingLookup,
    ClinicSettingsLookup,
    CoverageLookup,
    ServiceTypeLookup,
)
from .access_policy import ensure_can_act_on_calendar, ensure_can_create_holds
from .base import BaseService, Clock
from .conflict_scanner import ConflictScanner
from .coverage_resolver import CoverageResolver

logger = logging.getLogger(__name__)

CalendarLockFactory = Callable[[str, str], AbstractContextManager[bool]]


class HoldService(BaseService):
    """
    Service for short-lived slot reservations.

    Collaborators default to the SQLAlchemy repositories bound to ``db``;
    tests pass mocks for any of them.
    """

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        *,
        clinic_lookup: Optional[ClinicSettingsLookup] = None,
        service_type_lookup: Optional[ServiceTypeLookup] = None,
        coverage_lookup: Optional[CoverageLookup] = None,
        booking_lookup: Optional[BookingLookup] = None,
        hold_repository: Optional[HoldRepository] = None,
        event_publisher: Optional[Publisher] = None,
        fallbacks: Optional[EngineFallbacks] = None,
        lock_factory: Optional[CalendarLockFactory] = None,
    ):
        super().__init__(db, clock)
        self.clinic_lookup = clinic_lookup or RepositoryFactory.create_clinic_repository(db)
        self.service_type_lookup = (
            service_type_lookup or RepositoryFactory.create_service_type_repository(db)
        )
        self.hold_repository = hold_repository or RepositoryFactory.create_hold_repository(db)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )
        self.coverage_resolver = CoverageResolver(
            coverage_lookup or RepositoryFactory.create_coverage_repository(db)
        )
        self.conflict_scanner = ConflictScanner(
            booking_lookup or RepositoryFactory.create_booking_repository(db),
            self.hold_repository,
        )
        self.fallbacks = fallbacks or EngineFallbacks.from_settings(settings)
        self.lock_factory: CalendarLockFactory = lock_factory or calendar_lock

    # Creation

    def resolve_settings(
        self, tenant_id: str, clinic_id: str, service_type_id: Optional[str]
    ) -> EffectiveHoldSettings:
        """
        Load the clinic (and service type) and merge their hold settings.

        Raises:
            NotFoundException: clinic or service type missing
            InvalidStateException: service type inactive
        """
        clinic = self.clinic_lookup.get(tenant_id, clinic_id)
        if clinic is None:
            raise NotFoundException("Clinic not found", code="CLINIC_NOT_FOUND")

        override: Optional[ServiceTypeOverride] = None
        if service_type_id:
            service_type: Optional[ClinicServiceType] = self.service_type_lookup.get(
                clinic_id, service_type_id
            )
            if service_type is None:
                raise NotFoundException(
                    "Service type not found for this clinic", code="SERVICE_TYPE_NOT_FOUND"
                )
            override = ServiceTypeOverride.from_model(service_type)
            if not override.is_active:
                raise InvalidStateException(
                    "Service type is inactive for scheduling",
                    details={"service_type_id": service_type_id},
                )

        return resolve_hold_settings(
            ClinicHoldSettings.from_mapping(clinic.hold_settings_dict()),
            override,
            self.fallbacks,
        )

    @BaseService.measure_operation("create_hold")
    def create_hold(
        self,
        requester: Requester,
        *,
        clinic_id: str,
        professional_id: str,
        patient_id: str,
        start_at: datetime,
        end_at: datetime,
        service_type_id: Optional[str] = None,
    ) -> BookingHold:
        """
        Reserve ``[start_at, end_at)`` on the professional's calendar.

        Args:
            requester: Caller identity; its tenant scopes every lookup
            clinic_id: Clinic the slot belongs to
            professional_id: Requested professional (coverage may redirect)
            patient_id: Patient the hold is for
            start_at: Slot start, any timezone
            end_at: Slot end, any timezone
            service_type_id: Optional service type whose overrides apply

        Returns:
            The persisted active hold

        Raises:
            ForbiddenException, NotFoundException, InvalidRangeException,
            PastSlotException, InsufficientAdvanceNoticeException,
            AdvanceWindowExceededException, BookingConflictException,
            HoldConflictException, CalendarBusyException
        """
        tenant_id = requester.tenant_id
        start_at = ensure_utc(start_at)
        end_at = ensure_utc(end_at)
        now = self.now()

        try:
            ensure_can_create_holds(requester)
            ensure_can_act_on_calendar(requester, professional_id)

            hold_settings = self.resolve_settings(tenant_id, clinic_id, service_type_id)
            assignment = self.coverage_resolver.resolve(
                tenant_id, clinic_id, professional_id, start_at, end_at
            )
            validate_advance_window(
                now=now,
                start_at=start_at,
                end_at=end_at,
                min_advance_minutes=hold_settings.min_advance_minutes,
                max_advance_days=hold_settings.max_advance_days,
                max_advance_minutes=hold_settings.max_advance_minutes,
            )

            effective_id = assignment.effective_professional_id
            with self.lock_factory(tenant_id, effective_id) as acquired:
                if not acquired:
                    raise CalendarBusyException(effective_id)
                with self.transaction():
                    self.hold_repository.lock_professional_calendar(tenant_id, effective_id)
                    self.conflict_scanner.ensure_available(
                        tenant_id, effective_id, start_at, end_at, now
                    )
                    hold = self.hold_repository.create(
                        tenant_id=tenant_id,
                        clinic_id=clinic_id,
                        professional_id=effective_id,
                        original_professional_id=assignment.original_professional_id,
                        coverage_id=assignment.coverage_id,
                        patient_id=patient_id,
                        service_type_id=service_type_id,
                        start_at_utc=start_at,
                        end_at_utc=end_at,
                        ttl_expires_at_utc=compute_hold_expiry(
                            start_at, now, hold_settings.ttl_minutes
                        ),
                        status=HoldStatus.ACTIVE.value,
                        version=1,
                    )
                    self.event_publisher.publish(
                        HoldCreated(
                            tenant_id=tenant_id,
                            hold_id=hold.id,
                            clinic_id=clinic_id,
                            professional_id=effective_id,
                            original_professional_id=assignment.original_professional_id,
                            coverage_id=assignment.coverage_id,
                            patient_id=patient_id,
                            service_type_id=service_type_id,
                            start_at_utc=start_at,
                            end_at_utc=end_at,
                            ttl_expires_at_utc=hold.ttl_expires_at_utc,
                            occurred_at=now,
                        )
                    )
        except DomainException as exc:
            prometheus_metrics.record_hold_rejected(exc.code)
            self.logger.warning(
                "Hold request rejected",
                extra={
                    "tenant_id": tenant_id,
                    "clinic_id": clinic_id,
                    "professional_id": professional_id,
                    "code": exc.code,
                    "reason": exc.message,
                },
            )
            raise

        prometheus_metrics.record_hold_created(assignment.is_covered)
        self.logger.info(
            "Hold created",
            extra={
                "tenant_id": tenant_id,
                "hold_id": hold.id,
                "professional_id": hold.professional_id,
                "coverage_id": hold.coverage_id,
                "ttl_expires_at_utc": hold.ttl_expires_at_utc.isoformat(),
                **hold_settings.to_log_dict(),
            },
        )
        return hold

    # Lifecycle transitions

    def get_hold(self, tenant_id: str, hold_id: str) -> BookingHold:
        hold = self.hold_repository.get(tenant_id, hold_id)
        if hold is None:
            raise NotFoundException("Hold not found", code="HOLD_NOT_FOUND")
        return hold

    def _ensure_active(self, hold: BookingHold, now: datetime) -> None:
        if hold.status == HoldStatus.CANCELLED.value:
            raise ConflictException("Hold is already cancelled", code="HOLD_ALREADY_CANCELLED")
        if hold.status == HoldStatus.CONSUMED.value:
            raise ConflictException(
                "Hold was already used to create a booking", code="HOLD_ALREADY_CONSUMED"
            )
        if hold.status != HoldStatus.ACTIVE.value or hold.ttl_expires_at_utc <= now:
            raise InvalidStateException(
                "Hold has expired", details={"hold_id": hold.id, "status": hold.status}
            )

    @BaseService.measure_operation("cancel_hold")
    def cancel_hold(
        self,
        requester: Requester,
        hold_id: str,
        expected_version: int,
        reason: Optional[str] = None,
    ) -> BookingHold:
        hold = self.get_hold(requester.tenant_id, hold_id)
        ensure_can_act_on_calendar(requester, hold.professional_id, hold.original_professional_id)
        now = self.now()
        self._ensure_active(hold, now)

        with self.transaction():
            updated = self.hold_repository.update_versioned(
                hold.id,
                expected_version,
                tenant_id=requester.tenant_id,
                status=HoldStatus.CANCELLED.value,
            )
            self.event_publisher.publish(
                HoldCancelled(
                    tenant_id=updated.tenant_id,
                    hold_id=updated.id,
                    clinic_id=updated.clinic_id,
                    professional_id=updated.professional_id,
                    patient_id=updated.patient_id,
                    cancelled_by=requester.user_id,
                    reason=reason,
                    occurred_at=now,
                )
            )
        self.logger.info("Hold cancelled", extra={"hold_id": hold.id, "by": requester.user_id})
        return updated

    def consume_hold(self, hold: BookingHold, expected_version: int) -> BookingHold:
        """
        Flip an active, unexpired hold to consumed.

        Runs inside the caller's transaction so the hold and the booking that
        replaces it commit together.
        """
        self._ensure_active(hold, self.now())
        return self.hold_repository.update_versioned(
            hold.id,
            expected_version,
            tenant_id=hold.tenant_id,
            status=HoldStatus.CONSUMED.value,
        )

    def _mark_expired(self, hold: BookingHold, now: datetime) -> BookingHold:
        updated = self.hold_repository.update_versioned(
            hold.id, hold.version, tenant_id=hold.tenant_id, status=HoldStatus.EXPIRED.value
        )
        self.event_publisher.publish(
            HoldExpired(
                tenant_id=updated.tenant_id,
                hold_id=updated.id,
                clinic_id=updated.clinic_id,
                professional_id=updated.professional_id,
                patient_id=updated.patient_id,
                ttl_expires_at_utc=updated.ttl_expires_at_utc,
                occurred_at=now,
            )
        )
        return updated

    @BaseService.measure_operation("expire_hold")
    def expire_hold(self, tenant_id: str, hold_id: str) -> BookingHold:
        hold = self.get_hold(tenant_id, hold_id)
        now = self.now()
        if hold.status != HoldStatus.ACTIVE.value:
            raise InvalidStateException(
                "Only active holds can expire", details={"status": hold.status}
            )
        if hold.ttl_expires_at_utc > now:
            raise InvalidStateException(
                "Hold has not reached its expiry yet",
                details={"ttl_expires_at_utc": hold.ttl_expires_at_utc.isoformat()},
            )
        with self.transaction():
            updated = self._mark_expired(hold, now)
        prometheus_metrics.record_holds_expired(1)
        return updated

    @BaseService.measure_operation("expire_due_holds")
    def expire_due_holds(self, limit: Optional[int] = None) -> List[str]:
        """
        Sweep active holds whose TTL has passed.

        Holds changed concurrently (cancelled or consumed meanwhile) are
        skipped. Returns the ids that were expired.
        """
        now = self.now()
        expired: List[str] = []
        with self.transaction():
            due = self.hold_repository.list_due_for_expiry(
                now, limit=limit or settings.hold_expiry_batch_size
            )
            for hold in due:
                try:
                    self._mark_expired(hold, now)
                except (VersionConflictException, NotFoundException):
                    self.logger.info("Skipping hold changed during sweep", extra={"hold_id": hold.id})
                    continue
                expired.append(hold.id)

        prometheus_metrics.record_holds_expired(len(expired))
        if expired:
            self.logger.info(f"Expired {len(expired)} holds", extra={"hold_ids": expired})
        return expired
