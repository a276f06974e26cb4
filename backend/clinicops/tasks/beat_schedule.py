# backend/clinicops/tasks/beat_schedule.py
"""Celery Beat schedule for the scheduling engine's periodic work."""

from datetime import timedelta
from typing import Any, Dict

from ..core.config import settings


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    """Periodic tasks with intervals taken from settings."""
    return {
        "expire-due-holds": {
            "task": "holds.expire_due",
            "schedule": timedelta(seconds=settings.hold_expiry_sweep_seconds),
            "options": {"queue": "scheduling", "expires": settings.hold_expiry_sweep_seconds},
        },
        "relay-scheduling-events": {
            "task": "outbox.relay_pending",
            "schedule": timedelta(seconds=settings.outbox_relay_seconds),
            "options": {"queue": "scheduling", "expires": settings.outbox_relay_seconds},
        },
    }
