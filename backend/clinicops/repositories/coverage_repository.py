# backend/clinicops/repositories/coverage_repository.py
from datetime import datetime
import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.professional_coverage import CoverageStatus, ProfessionalCoverage
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CoverageRepository(BaseRepository[ProfessionalCoverage]):
    """Lookups over professional coverage (substitution) records."""

    def __init__(self, db: Session):
        super().__init__(db, ProfessionalCoverage)

    def find_active_overlapping(
        self,
        tenant_id: str,
        clinic_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> List[ProfessionalCoverage]:
        """
        Active coverages for ``professional_id`` whose period overlaps the window.

        Ordered by start, then id, so the first row is the one that applies.
        """
        try:
            return (
                self.db.query(ProfessionalCoverage)
                .filter(
                    ProfessionalCoverage.tenant_id == tenant_id,
                    ProfessionalCoverage.clinic_id == clinic_id,
                    ProfessionalCoverage.professional_id == professional_id,
                    ProfessionalCoverage.status == CoverageStatus.ACTIVE.value,
                    ProfessionalCoverage.start_at < end_at,
                    ProfessionalCoverage.end_at > start_at,
                )
                .order_by(ProfessionalCoverage.start_at.asc(), ProfessionalCoverage.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding coverages for {professional_id}: {str(e)}")
            raise RepositoryException(f"Failed to find coverages: {str(e)}")
