# backend/clinicops/services/access_policy.py
"""
Who may touch which calendar.

Clinic staff act on any professional; a professional only on their own
calendar (as the requested or the covered professional); a patient only
sees or cancels their own bookings.
"""

from typing import Optional

from ..core.enums import HOLD_CREATOR_ROLES
from ..core.exceptions import ForbiddenException
from ..principal import Requester


def ensure_can_create_holds(requester: Requester) -> None:
    if requester.role not in HOLD_CREATOR_ROLES:
        raise ForbiddenException(
            f"Role {requester.raw_role} is not allowed to create holds",
            details={"role": requester.raw_role},
        )


def ensure_can_act_on_calendar(requester: Requester, *professional_ids: Optional[str]) -> None:
    """
    Staff pass; a professional must be one of ``professional_ids``.

    Every other role is rejected.
    """
    if requester.is_staff:
        return
    if requester.is_professional:
        if requester.user_id in {pid for pid in professional_ids if pid}:
            return
        raise ForbiddenException(
            "Professionals can only act on their own calendar",
            details={"professional_ids": [pid for pid in professional_ids if pid]},
        )
    raise ForbiddenException(
        f"Role {requester.raw_role} is not allowed to manage this calendar",
        details={"role": requester.raw_role},
    )


def ensure_can_cancel_booking(
    requester: Requester, patient_id: str, *professional_ids: Optional[str]
) -> None:
    if requester.is_patient:
        if requester.user_id == patient_id:
            return
        raise ForbiddenException("Patients can only cancel their own bookings")
    ensure_can_act_on_calendar(requester, *professional_ids)


def ensure_can_view_booking(
    requester: Requester, patient_id: str, *professional_ids: Optional[str]
) -> None:
    if requester.is_patient:
        if requester.user_id == patient_id:
            return
        raise ForbiddenException("Patients can only view their own bookings")
    ensure_can_act_on_calendar(requester, *professional_ids)


def ensure_can_record_payment(requester: Requester) -> None:
    if not requester.is_staff:
        raise ForbiddenException(
            f"Role {requester.raw_role} is not allowed to record payment status",
            details={"role": requester.raw_role},
        )
