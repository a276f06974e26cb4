# backend/clinicops/core/enums.py
"""
Core enums for the clinic operations backend.

Role names mirror the tenant's authorization tables, which are owned by an
external service; the engine only needs to recognise them.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles a requester may carry inside a clinic tenant."""

    SUPER_ADMIN = "super_admin"
    CLINIC_OWNER = "clinic_owner"
    MANAGER = "manager"
    SECRETARY = "secretary"
    PROFESSIONAL = "professional"
    PATIENT = "patient"


HOLD_CREATOR_ROLES = frozenset(
    {
        RoleName.SUPER_ADMIN,
        RoleName.CLINIC_OWNER,
        RoleName.MANAGER,
        RoleName.SECRETARY,
        RoleName.PROFESSIONAL,
    }
)

CLINIC_STAFF_ROLES = frozenset(
    {
        RoleName.SUPER_ADMIN,
        RoleName.CLINIC_OWNER,
        RoleName.MANAGER,
        RoleName.SECRETARY,
    }
)


def parse_role(raw: str | RoleName | None) -> RoleName | None:
    """Normalise a role string (case-insensitive); unknown roles map to None."""
    if raw is None:
        return None
    if isinstance(raw, RoleName):
        return raw
    try:
        return RoleName(raw.strip().lower())
    except ValueError:
        return None
