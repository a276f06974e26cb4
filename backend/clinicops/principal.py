"""Requester identity for scheduling operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.enums import CLINIC_STAFF_ROLES, RoleName, parse_role


@dataclass(frozen=True)
class Requester:
    """
    The caller of a scheduling operation.

    ``raw_role`` keeps what the caller sent so rejections can name it;
    ``role`` is None for roles the engine does not recognise. A professional's
    ``user_id`` is their professional id.
    """

    tenant_id: str
    user_id: str
    raw_role: str

    @property
    def role(self) -> Optional[RoleName]:
        return parse_role(self.raw_role)

    @property
    def is_staff(self) -> bool:
        return self.role in CLINIC_STAFF_ROLES

    @property
    def is_professional(self) -> bool:
        return self.role is RoleName.PROFESSIONAL

    @property
    def is_patient(self) -> bool:
        return self.role is RoleName.PATIENT