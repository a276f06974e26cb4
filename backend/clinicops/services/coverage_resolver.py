# backend/clinicops/services/coverage_resolver.py
from datetime import datetime
import logging

from ..domain.coverage import CoverageAssignment, pick_coverage
from ..repositories.protocols import CoverageLookup

logger = logging.getLogger(__name__)


class CoverageResolver:
    """Redirects a reservation to the covering professional when a coverage applies."""

    def __init__(self, coverage_lookup: CoverageLookup):
        self.coverage_lookup = coverage_lookup

    def resolve(
        self,
        tenant_id: str,
        clinic_id: str,
        professional_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> CoverageAssignment:
        coverages = list(
            self.coverage_lookup.find_active_overlapping(
                tenant_id, clinic_id, professional_id, start_at, end_at
            )
            or []
        )
        assignment = pick_coverage(professional_id, coverages)
        if assignment.is_covered:
            if len(coverages) > 1:
                logger.warning(
                    "Multiple active coverages overlap the requested window",
                    extra={
                        "tenant_id": tenant_id,
                        "professional_id": professional_id,
                        "coverage_ids": [str(c.id) for c in coverages],
                    },
                )
            logger.debug(
                "Coverage applied",
                extra={
                    "tenant_id": tenant_id,
                    "clinic_id": clinic_id,
                    "original_professional_id": professional_id,
                    "coverage_professional_id": assignment.effective_professional_id,
                    "coverage_id": assignment.coverage_id,
                },
            )
        return assignment
