"""Base models for scheduling request and response bodies."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Response body built from ORM rows; unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request body; a client sending unknown fields gets a 422."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)
