# backend/clinicops/models/professional_coverage.py
"""
Professional coverage: a substitute professional standing in for another
over a date range. Created and ended by clinic staff; read-only here.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, String
import ulid

from ..database import Base
from .types import TimestampMixin, UTCDateTime


class CoverageStatus(str, Enum):
    """Coverage lifecycle statuses."""

    ACTIVE = "active"
    ENDED = "ended"


class ProfessionalCoverage(TimestampMixin, Base):
    """Substitution of ``professional_id`` by ``coverage_professional_id``."""

    __tablename__ = "clinic_professional_coverages"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False)
    clinic_id = Column(String(26), ForeignKey("clinics.id"), nullable=False)
    professional_id = Column(String(64), nullable=False)
    coverage_professional_id = Column(String(64), nullable=False)
    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)
    status = Column(String(20), nullable=False, default=CoverageStatus.ACTIVE.value)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'ended')", name="ck_coverages_status"),
        CheckConstraint("end_at > start_at", name="ck_coverages_range"),
        Index(
            "ix_coverages_lookup",
            "tenant_id",
            "clinic_id",
            "professional_id",
            "status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ProfessionalCoverage {self.id}: {self.professional_id}->"
            f"{self.coverage_professional_id} [{self.start_at}, {self.end_at}) {self.status}>"
        )
