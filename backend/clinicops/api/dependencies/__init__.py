"""
FastAPI dependencies for routes.

Usage:
    from clinicops.api.dependencies import get_hold_service, get_requester
"""

from ...database import get_db
from .requester import get_requester
from .services import get_booking_service, get_hold_service

__all__ = ["get_booking_service", "get_db", "get_hold_service", "get_requester"]
