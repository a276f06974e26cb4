# backend/clinicops/repositories/factory.py
"""
Repository Factory for the clinic scheduling engine.

Provides centralized creation of repository instances, ensuring
consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .clinic_repository import ClinicRepository, ServiceTypeRepository
    from .coverage_repository import CoverageRepository
    from .event_outbox_repository import EventOutboxRepository
    from .hold_repository import HoldRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_clinic_repository(db: Session) -> "ClinicRepository":
        from .clinic_repository import ClinicRepository

        return ClinicRepository(db)

    @staticmethod
    def create_service_type_repository(db: Session) -> "ServiceTypeRepository":
        from .clinic_repository import ServiceTypeRepository

        return ServiceTypeRepository(db)

    @staticmethod
    def create_coverage_repository(db: Session) -> "CoverageRepository":
        from .coverage_repository import CoverageRepository

        return CoverageRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_hold_repository(db: Session) -> "HoldRepository":
        from .hold_repository import HoldRepository

        return HoldRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)
