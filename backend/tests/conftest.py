# backend/tests/conftest.py
"""
Shared fixtures for the scheduling engine tests.

Every test gets its own in-memory SQLite database, a frozen clock and a
calendar lock that always grants, so no Redis or PostgreSQL is needed.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
import os
from typing import Any, Callable, Iterator

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CALENDAR_LOCK_ENABLED", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from clinicops.database import Base
from clinicops.events.scheduling_events import SchedulingEvents
import clinicops.models  # noqa: F401 - registers every table on Base.metadata
from clinicops.models.booking import Booking, BookingStatus, PaymentStatus
from clinicops.models.booking_hold import BookingHold, HoldStatus
from clinicops.models.clinic import Clinic, ClinicServiceType
from clinicops.models.professional_coverage import CoverageStatus, ProfessionalCoverage
from clinicops.principal import Requester

TENANT_ID = "tenant-1"
OTHER_TENANT_ID = "tenant-2"
PROFESSIONAL_ID = "prof-1"
SUBSTITUTE_ID = "prof-2"
PATIENT_ID = "patient-1"

# Monday 2030-01-07 08:00 UTC
NOW = datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def db() -> Iterator[Session]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    return lambda: now


@contextmanager
def _granted_lock(tenant_id: str, professional_id: str) -> Iterator[bool]:
    yield True


@contextmanager
def _busy_lock(tenant_id: str, professional_id: str) -> Iterator[bool]:
    yield False


@pytest.fixture
def lock_factory() -> Callable[[str, str], Any]:
    return _granted_lock


@pytest.fixture
def busy_lock_factory() -> Callable[[str, str], Any]:
    return _busy_lock


@pytest.fixture(autouse=True)
def _reset_listeners() -> Iterator[None]:
    SchedulingEvents.clear()
    yield
    SchedulingEvents.clear()


@pytest.fixture
def secretary() -> Requester:
    return Requester(tenant_id=TENANT_ID, user_id="user-secretary", raw_role="secretary")


@pytest.fixture
def professional() -> Requester:
    return Requester(tenant_id=TENANT_ID, user_id=PROFESSIONAL_ID, raw_role="professional")


@pytest.fixture
def patient() -> Requester:
    return Requester(tenant_id=TENANT_ID, user_id=PATIENT_ID, raw_role="patient")


@pytest.fixture
def make_clinic(db: Session) -> Callable[..., Clinic]:
    def _make(hold_settings: Any = None, tenant_id: str = TENANT_ID) -> Clinic:
        clinic = Clinic(tenant_id=tenant_id, name="Downtown Clinic", hold_settings=hold_settings)
        db.add(clinic)
        db.commit()
        return clinic

    return _make


@pytest.fixture
def clinic(make_clinic: Callable[..., Clinic]) -> Clinic:
    return make_clinic({"ttlMinutes": 30, "minAdvanceMinutes": 60})


@pytest.fixture
def make_service_type(db: Session) -> Callable[..., ClinicServiceType]:
    def _make(clinic: Clinic, **overrides: Any) -> ClinicServiceType:
        values: dict[str, Any] = {"name": "Consultation", "duration_minutes": 60, "is_active": True}
        values.update(overrides)
        service_type = ClinicServiceType(clinic_id=clinic.id, **values)
        db.add(service_type)
        db.commit()
        return service_type

    return _make


@pytest.fixture
def make_hold(db: Session) -> Callable[..., BookingHold]:
    def _make(clinic: Clinic, start_at: datetime, end_at: datetime, **overrides: Any) -> BookingHold:
        values: dict[str, Any] = {
            "tenant_id": TENANT_ID,
            "professional_id": PROFESSIONAL_ID,
            "patient_id": PATIENT_ID,
            "ttl_expires_at_utc": NOW + timedelta(minutes=30),
            "status": HoldStatus.ACTIVE.value,
        }
        values.update(overrides)
        hold = BookingHold(clinic_id=clinic.id, start_at_utc=start_at, end_at_utc=end_at, **values)
        db.add(hold)
        db.commit()
        return hold

    return _make


@pytest.fixture
def make_booking(db: Session) -> Callable[..., Booking]:
    def _make(clinic: Clinic, start_at: datetime, end_at: datetime, **overrides: Any) -> Booking:
        values: dict[str, Any] = {
            "tenant_id": TENANT_ID,
            "professional_id": PROFESSIONAL_ID,
            "patient_id": PATIENT_ID,
            "status": BookingStatus.SCHEDULED.value,
            "payment_status": PaymentStatus.PENDING.value,
            "late_tolerance_minutes": 15,
        }
        values.update(overrides)
        booking = Booking(clinic_id=clinic.id, start_at_utc=start_at, end_at_utc=end_at, **values)
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def make_coverage(db: Session) -> Callable[..., ProfessionalCoverage]:
    def _make(clinic: Clinic, start_at: datetime, end_at: datetime, **overrides: Any) -> ProfessionalCoverage:
        values: dict[str, Any] = {
            "tenant_id": TENANT_ID,
            "professional_id": PROFESSIONAL_ID,
            "coverage_professional_id": SUBSTITUTE_ID,
            "status": CoverageStatus.ACTIVE.value,
        }
        values.update(overrides)
        coverage = ProfessionalCoverage(clinic_id=clinic.id, start_at=start_at, end_at=end_at, **values)
        db.add(coverage)
        db.commit()
        return coverage

    return _make
