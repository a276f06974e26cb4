"""Hold request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class HoldCreate(StrictRequestModel):
    """
    Reserve a slot on a professional's calendar.

    Times may carry any offset; naive values are read as UTC.
    """

    clinic_id: str = Field(..., description="Clinic the slot belongs to")
    professional_id: str = Field(..., description="Requested professional")
    patient_id: str = Field(..., description="Patient the hold is for")
    service_type_id: Optional[str] = Field(None, description="Service type whose overrides apply")
    start_at_utc: datetime
    end_at_utc: datetime


class HoldCancel(StrictRequestModel):
    expected_version: int = Field(..., ge=1)
    reason: Optional[str] = Field(None, max_length=500)


class HoldResponse(StrictModel):
    id: str
    tenant_id: str
    clinic_id: str
    professional_id: str
    original_professional_id: Optional[str] = None
    coverage_id: Optional[str] = None
    patient_id: str
    service_type_id: Optional[str] = None
    start_at_utc: datetime
    end_at_utc: datetime
    ttl_expires_at_utc: datetime
    status: str
    version: int
