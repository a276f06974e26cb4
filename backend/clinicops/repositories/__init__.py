"""
Repository layer for the clinic scheduling engine.

Usage:
    from clinicops.repositories import RepositoryFactory

    holds = RepositoryFactory.create_hold_repository(db)
    overlapping = holds.find_active_overlap(tenant_id, professional_id, start, end, now)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .clinic_repository import ClinicRepository, ServiceTypeRepository
from .coverage_repository import CoverageRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .hold_repository import HoldRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "ClinicRepository",
    "CoverageRepository",
    "EventOutboxRepository",
    "HoldRepository",
    "RepositoryFactory",
    "ServiceTypeRepository",
]
