"""API v1 routers, mounted under /api/v1 in main.py."""

from . import bookings, holds

__all__ = ["bookings", "holds"]
