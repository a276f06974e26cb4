# backend/clinicops/routes/v1/holds.py
"""
Hold routes - API v1

Endpoints:
    POST / - Reserve a slot (hold) on a professional's calendar
    POST /{hold_id}/cancel - Cancel an active hold
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Body, Depends, Path, status

from ...api.dependencies import get_hold_service, get_requester
from ...core.exceptions import DomainException
from ...principal import Requester
from ...schemas.hold import HoldCancel, HoldCreate, HoldResponse
from ...services.hold_service import HoldService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["holds-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.post(
    "",
    response_model=HoldResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Role may not reserve this calendar"},
        404: {"description": "Clinic or service type not found"},
        409: {"description": "Calendar conflict"},
        422: {"description": "Admission rule violated"},
    },
)
async def create_hold(
    payload: HoldCreate = Body(...),
    requester: Requester = Depends(get_requester),
    hold_service: HoldService = Depends(get_hold_service),
) -> HoldResponse:
    """Create a hold; coverage may redirect it to a substitute professional."""
    try:
        hold = await asyncio.to_thread(
            lambda: hold_service.create_hold(
                requester,
                clinic_id=payload.clinic_id,
                professional_id=payload.professional_id,
                patient_id=payload.patient_id,
                start_at=payload.start_at_utc,
                end_at=payload.end_at_utc,
                service_type_id=payload.service_type_id,
            )
        )
        return HoldResponse.model_validate(hold)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{hold_id}/cancel",
    response_model=HoldResponse,
    responses={404: {"description": "Hold not found"}, 409: {"description": "Stale version"}},
)
async def cancel_hold(
    hold_id: str = Path(..., description="Hold ULID", pattern=ULID_PATH_PATTERN),
    payload: HoldCancel = Body(...),
    requester: Requester = Depends(get_requester),
    hold_service: HoldService = Depends(get_hold_service),
) -> HoldResponse:
    try:
        hold = await asyncio.to_thread(
            hold_service.cancel_hold,
            requester,
            hold_id,
            payload.expected_version,
            payload.reason,
        )
        return HoldResponse.model_validate(hold)
    except DomainException as e:
        handle_domain_exception(e)
