# backend/clinicops/repositories/protocols.py
"""
Collaborator contracts consumed by the scheduling services.

The SQLAlchemy repositories in this package satisfy them; tests substitute
mocks or in-memory fakes.
"""

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from ..models.booking import Booking
from ..models.booking_hold import BookingHold
from ..models.clinic import Clinic, ClinicServiceType
from ..models.professional_coverage import ProfessionalCoverage


class ClinicSettingsLookup(Protocol):
    def get(self, tenant_id: str, clinic_id: str) -> Optional[Clinic]:
        ...


class ServiceTypeLookup(Protocol):
    def get(self, clinic_id: str, service_type_id: str) -> Optional[ClinicServiceType]:
        ...


class CoverageLookup(Protocol):
    def find_active_overlapping(
        self,
        tenant_id: str,
        clinic_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Sequence[ProfessionalCoverage]:
        ...


class BookingLookup(Protocol):
    def list_by_professional_and_range(
        self,
        tenant_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> Sequence[Booking]:
        ...


class HoldStore(Protocol):
    def find_active_overlap(
        self,
        tenant_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
        now: datetime,
    ) -> Sequence[BookingHold]:
        ...

    def create(self, **kwargs: Any) -> BookingHold:
        ...

    def lock_professional_calendar(self, tenant_id: str, professional_id: str) -> None:
        ...
