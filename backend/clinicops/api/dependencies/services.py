"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.booking_service import BookingService
from ...services.hold_service import HoldService


def get_hold_service(db: Session = Depends(get_db)) -> HoldService:
    return HoldService(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)
