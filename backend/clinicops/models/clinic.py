# backend/clinicops/models/clinic.py
"""
Clinic and service-type records consumed read-only by the scheduling engine.

Both tables are administered elsewhere (clinic settings screens); the engine
only reads the hold settings block and the per-service admission overrides.
"""

from typing import Any, Dict, Optional

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON
import ulid

from ..database import Base
from .types import TimestampMixin


class Clinic(TimestampMixin, Base):
    """A clinic inside a tenant, carrying its default hold settings."""

    __tablename__ = "clinics"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    # None means the clinic never configured holds; engine fallbacks apply.
    hold_settings = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=True,
    )

    __table_args__ = (Index("ix_clinics_tenant_id_id", "tenant_id", "id"),)

    def hold_settings_dict(self) -> Optional[Dict[str, Any]]:
        if isinstance(self.hold_settings, dict):
            return dict(self.hold_settings)
        return None

    def __repr__(self) -> str:
        return f"<Clinic {self.id}: tenant={self.tenant_id}, name={self.name}>"


class ClinicServiceType(TimestampMixin, Base):
    """Service offered by a clinic, optionally overriding admission windows."""

    __tablename__ = "clinic_service_types"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    clinic_id = Column(String(26), ForeignKey("clinics.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    min_advance_minutes = Column(Integer, nullable=True)
    max_advance_minutes = Column(Integer, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ClinicServiceType {self.id}: clinic={self.clinic_id}, "
            f"active={self.is_active}, min={self.min_advance_minutes}, max={self.max_advance_minutes}>"
        )
