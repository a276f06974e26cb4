# backend/clinicops/repositories/clinic_repository.py
"""
Read-only lookups for clinics and their service types.

Both tables are administered outside the scheduling engine.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.clinic import Clinic, ClinicServiceType
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ClinicRepository(BaseRepository[Clinic]):
    """Tenant-scoped clinic lookup."""

    def __init__(self, db: Session):
        super().__init__(db, Clinic)

    def get(self, tenant_id: str, clinic_id: str) -> Optional[Clinic]:
        try:
            return (
                self.db.query(Clinic)
                .filter(Clinic.tenant_id == tenant_id, Clinic.id == clinic_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading clinic {clinic_id}: {str(e)}")
            raise RepositoryException(f"Failed to load clinic: {str(e)}")


class ServiceTypeRepository(BaseRepository[ClinicServiceType]):
    """Service types are scoped by clinic; the clinic itself carries the tenant."""

    def __init__(self, db: Session):
        super().__init__(db, ClinicServiceType)

    def get(self, clinic_id: str, service_type_id: str) -> Optional[ClinicServiceType]:
        try:
            return (
                self.db.query(ClinicServiceType)
                .filter(
                    ClinicServiceType.clinic_id == clinic_id,
                    ClinicServiceType.id == service_type_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading service type {service_type_id}: {str(e)}")
            raise RepositoryException(f"Failed to load service type: {str(e)}")
