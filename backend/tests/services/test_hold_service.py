# backend/tests/services/test_hold_service.py
"""
HoldService against an in-memory store.

Each test runs the full admission pipeline (authorization, settings,
coverage, window, conflict scan, TTL, persistence, outbox) with a frozen
clock and a calendar lock that always grants.
"""

from datetime import timedelta

import pytest

from clinicops.core.exceptions import (
    BookingConflictException,
    CalendarBusyException,
    ConflictException,
    ForbiddenException,
    HoldConflictException,
    InsufficientAdvanceNoticeException,
    InvalidStateException,
    NotFoundException,
    PastSlotException,
    VersionConflictException,
)
from clinicops.models.booking import BookingStatus
from clinicops.models.booking_hold import BookingHold, HoldStatus
from clinicops.principal import Requester
from clinicops.repositories.event_outbox_repository import EventOutboxRepository
from clinicops.services.hold_service import HoldService
from tests.conftest import NOW, PATIENT_ID, PROFESSIONAL_ID, SUBSTITUTE_ID, TENANT_ID

TEN_AM = NOW.replace(hour=10)


@pytest.fixture
def hold_service(db, clock, lock_factory):
    return HoldService(db, clock, lock_factory=lock_factory)


def _create(service, requester, clinic, start, end, **kwargs):
    params = {
        "clinic_id": clinic.id,
        "professional_id": PROFESSIONAL_ID,
        "patient_id": PATIENT_ID,
        "start_at": start,
        "end_at": end,
    }
    params.update(kwargs)
    return service.create_hold(requester, **params)


def _event_types(db, aggregate_id):
    return sorted(row.event_type for row in EventOutboxRepository(db).list_for_aggregate(aggregate_id))


class TestCreateHoldTtl:
    def test_ttl_from_clinic_settings(self, db, make_clinic, hold_service, secretary):
        clinic = make_clinic({"ttlMinutes": 45, "minAdvanceMinutes": 60})
        start = NOW + timedelta(hours=2)

        hold = _create(hold_service, secretary, clinic, start, start + timedelta(hours=1))

        assert hold.ttl_expires_at_utc == NOW + timedelta(minutes=45)
        assert hold.status == HoldStatus.ACTIVE.value
        assert hold.version == 1

    def test_ttl_clamped_before_slot_start(self, db, make_clinic, hold_service, secretary):
        clinic = make_clinic({"ttlMinutes": 180, "minAdvanceMinutes": 30})
        start = NOW + timedelta(minutes=45)

        hold = _create(hold_service, secretary, clinic, start, start + timedelta(hours=1))

        assert hold.ttl_expires_at_utc == start - timedelta(minutes=1)

    def test_clinic_without_settings_uses_engine_fallbacks(
        self, db, make_clinic, hold_service, secretary
    ):
        clinic = make_clinic(None)
        start = NOW + timedelta(hours=2)

        hold = _create(hold_service, secretary, clinic, start, start + timedelta(hours=1))

        assert hold.ttl_expires_at_utc == NOW + timedelta(minutes=30)

    def test_malformed_overbooking_threshold_does_not_block_holds(
        self, db, make_clinic, hold_service, secretary
    ):
        clinic = make_clinic({"ttlMinutes": 20, "overbookingThreshold": "80%"})
        start = NOW + timedelta(hours=2)

        hold = _create(hold_service, secretary, clinic, start, start + timedelta(hours=1))

        assert hold.ttl_expires_at_utc == NOW + timedelta(minutes=20)

    def test_hold_created_event_queued(self, db, clinic, hold_service, secretary):
        start = NOW + timedelta(hours=2)

        hold = _create(hold_service, secretary, clinic, start, start + timedelta(hours=1))

        assert _event_types(db, hold.id) == ["scheduling.hold.created"]


class TestCreateHoldConflicts:
    def test_overlapping_booking_rejects(self, db, clinic, make_booking, hold_service, secretary):
        make_booking(
            clinic,
            TEN_AM + timedelta(minutes=30),
            TEN_AM + timedelta(minutes=90),
            status=BookingStatus.CONFIRMED.value,
        )

        with pytest.raises(BookingConflictException) as exc_info:
            _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        assert isinstance(exc_info.value, ConflictException)
        assert db.query(BookingHold).count() == 0

    def test_back_to_back_booking_allowed(self, db, clinic, make_booking, hold_service, secretary):
        make_booking(clinic, TEN_AM - timedelta(hours=1), TEN_AM, status=BookingStatus.CONFIRMED.value)

        hold = _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        assert hold.id

    def test_cancelled_booking_does_not_block(self, db, clinic, make_booking, hold_service, secretary):
        make_booking(clinic, TEN_AM, TEN_AM + timedelta(hours=1), status=BookingStatus.CANCELLED.value)

        assert _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1)).id

    def test_active_hold_rejects(self, db, clinic, make_hold, hold_service, secretary):
        make_hold(clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        with pytest.raises(HoldConflictException):
            _create(
                hold_service,
                secretary,
                clinic,
                TEN_AM + timedelta(minutes=15),
                TEN_AM + timedelta(minutes=45),
            )

    def test_hold_past_ttl_does_not_block(self, db, clinic, make_hold, hold_service, secretary):
        make_hold(clinic, TEN_AM, TEN_AM + timedelta(hours=1), ttl_expires_at_utc=NOW)

        assert _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1)).id

    def test_second_hold_for_same_slot_rejected(self, db, clinic, hold_service, secretary):
        _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        with pytest.raises(HoldConflictException):
            _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

    def test_busy_calendar_lock_rejects_without_writing(
        self, db, clinic, clock, busy_lock_factory, secretary
    ):
        service = HoldService(db, clock, lock_factory=busy_lock_factory)

        with pytest.raises(CalendarBusyException):
            _create(service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        assert db.query(BookingHold).count() == 0


class TestCreateHoldCoverage:
    def test_coverage_redirects_to_substitute(
        self, db, clinic, make_coverage, hold_service, secretary
    ):
        coverage = make_coverage(clinic, NOW - timedelta(days=1), NOW + timedelta(days=3))

        hold = _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        assert hold.professional_id == SUBSTITUTE_ID
        assert hold.original_professional_id == PROFESSIONAL_ID
        assert hold.coverage_id == coverage.id

    def test_conflict_checked_on_substitute_calendar(
        self, db, clinic, make_coverage, make_booking, hold_service, secretary
    ):
        make_coverage(clinic, NOW - timedelta(days=1), NOW + timedelta(days=3))
        make_booking(
            clinic, TEN_AM, TEN_AM + timedelta(hours=1), professional_id=SUBSTITUTE_ID
        )

        with pytest.raises(BookingConflictException):
            _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

    def test_booking_on_original_calendar_ignored_when_covered(
        self, db, clinic, make_coverage, make_booking, hold_service, secretary
    ):
        make_coverage(clinic, NOW - timedelta(days=1), NOW + timedelta(days=3))
        make_booking(clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        hold = _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        assert hold.professional_id == SUBSTITUTE_ID

    def test_no_coverage_keeps_audit_fields_empty(self, db, clinic, hold_service, secretary):
        hold = _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        assert hold.professional_id == PROFESSIONAL_ID
        assert hold.original_professional_id is None
        assert hold.coverage_id is None


class TestCreateHoldAdmission:
    def test_service_type_minimum_notice(
        self, db, make_clinic, make_service_type, hold_service, secretary
    ):
        clinic = make_clinic({"minAdvanceMinutes": 0})
        service_type = make_service_type(clinic, min_advance_minutes=90)
        start = NOW + timedelta(minutes=30)

        with pytest.raises(InsufficientAdvanceNoticeException) as exc_info:
            _create(
                hold_service,
                secretary,
                clinic,
                start,
                start + timedelta(hours=1),
                service_type_id=service_type.id,
            )

        assert exc_info.value.message == "Minimum advance notice of 90 minutes not met"

    def test_past_slot(self, db, clinic, hold_service, secretary):
        start = NOW - timedelta(hours=1)

        with pytest.raises(PastSlotException):
            _create(hold_service, secretary, clinic, start, start + timedelta(hours=1))

    def test_unknown_clinic(self, db, hold_service, secretary):
        with pytest.raises(NotFoundException) as exc_info:
            hold_service.create_hold(
                secretary,
                clinic_id="01HZZZZZZZZZZZZZZZZZZZZZZZ",
                professional_id=PROFESSIONAL_ID,
                patient_id=PATIENT_ID,
                start_at=TEN_AM,
                end_at=TEN_AM + timedelta(hours=1),
            )
        assert exc_info.value.code == "CLINIC_NOT_FOUND"

    def test_clinic_of_other_tenant_not_visible(self, db, make_clinic, hold_service, secretary):
        clinic = make_clinic({"ttlMinutes": 30}, tenant_id="tenant-2")

        with pytest.raises(NotFoundException):
            _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

    def test_inactive_service_type(self, db, clinic, make_service_type, hold_service, secretary):
        service_type = make_service_type(clinic, is_active=False)

        with pytest.raises(InvalidStateException):
            _create(
                hold_service,
                secretary,
                clinic,
                TEN_AM,
                TEN_AM + timedelta(hours=1),
                service_type_id=service_type.id,
            )


class TestCreateHoldAuthorization:
    def test_patient_cannot_create_holds(self, db, clinic, hold_service, patient):
        with pytest.raises(ForbiddenException) as exc_info:
            _create(hold_service, patient, clinic, TEN_AM, TEN_AM + timedelta(hours=1))
        assert exc_info.value.message == "Role patient is not allowed to create holds"

    def test_professional_on_own_calendar(self, db, clinic, hold_service, professional):
        hold = _create(hold_service, professional, clinic, TEN_AM, TEN_AM + timedelta(hours=1))
        assert hold.professional_id == PROFESSIONAL_ID

    def test_professional_on_other_calendar(self, db, clinic, hold_service):
        other = Requester(tenant_id=TENANT_ID, user_id=SUBSTITUTE_ID, raw_role="professional")

        with pytest.raises(ForbiddenException):
            _create(hold_service, other, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

    def test_unknown_role_rejected(self, db, clinic, hold_service):
        guest = Requester(tenant_id=TENANT_ID, user_id="u-9", raw_role="janitor")

        with pytest.raises(ForbiddenException):
            _create(hold_service, guest, clinic, TEN_AM, TEN_AM + timedelta(hours=1))


class TestCancelHold:
    def test_cancel_frees_the_slot(self, db, clinic, hold_service, secretary):
        hold = _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        cancelled = hold_service.cancel_hold(secretary, hold.id, 1, reason="patient changed mind")

        assert cancelled.status == HoldStatus.CANCELLED.value
        assert cancelled.version == 2
        assert _event_types(db, hold.id) == [
            "scheduling.hold.cancelled",
            "scheduling.hold.created",
        ]
        assert _create(hold_service, secretary, clinic, TEN_AM, TEN_AM + timedelta(hours=1)).id

    def test_stale_version(self, db, clinic, make_hold, hold_service, secretary):
        hold = make_hold(clinic, TEN_AM, TEN_AM + timedelta(hours=1), version=3)

        with pytest.raises(VersionConflictException):
            hold_service.cancel_hold(secretary, hold.id, 2)

    def test_already_cancelled(self, db, clinic, make_hold, hold_service, secretary):
        hold = make_hold(
            clinic, TEN_AM, TEN_AM + timedelta(hours=1), status=HoldStatus.CANCELLED.value
        )

        with pytest.raises(ConflictException) as exc_info:
            hold_service.cancel_hold(secretary, hold.id, 1)
        assert exc_info.value.code == "HOLD_ALREADY_CANCELLED"

    def test_unknown_hold(self, db, hold_service, secretary):
        with pytest.raises(NotFoundException):
            hold_service.cancel_hold(secretary, "01HZZZZZZZZZZZZZZZZZZZZZZZ", 1)


class TestExpiry:
    def test_sweep_expires_due_holds(self, db, clinic, make_hold, hold_service):
        due = make_hold(clinic, TEN_AM, TEN_AM + timedelta(hours=1), ttl_expires_at_utc=NOW)
        fresh = make_hold(clinic, TEN_AM + timedelta(hours=2), TEN_AM + timedelta(hours=3))

        expired = hold_service.expire_due_holds()

        assert expired == [due.id]
        db.refresh(due)
        db.refresh(fresh)
        assert due.status == HoldStatus.EXPIRED.value
        assert fresh.status == HoldStatus.ACTIVE.value
        assert _event_types(db, due.id) == ["scheduling.hold.expired"]

    def test_expire_hold_before_ttl_rejected(self, db, clinic, make_hold, hold_service):
        hold = make_hold(clinic, TEN_AM, TEN_AM + timedelta(hours=1))

        with pytest.raises(InvalidStateException):
            hold_service.expire_hold(TENANT_ID, hold.id)

    def test_expire_single_hold(self, db, clinic, make_hold, hold_service):
        hold = make_hold(
            clinic, TEN_AM, TEN_AM + timedelta(hours=1), ttl_expires_at_utc=NOW - timedelta(minutes=5)
        )

        expired = hold_service.expire_hold(TENANT_ID, hold.id)

        assert expired.status == HoldStatus.EXPIRED.value
        assert expired.version == 2
