# backend/clinicops/tasks/hold_expiry.py
"""Periodic sweep that moves holds past their TTL to ``expired``."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from ..database import SessionLocal
from ..services.hold_service import HoldService
from .celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="holds.expire_due", max_retries=0)
def expire_due_holds_task(limit: Optional[int] = None) -> Dict[str, int]:
    """Expire every active hold whose TTL has passed, in one batch."""
    db = SessionLocal()
    try:
        expired = HoldService(db).expire_due_holds(limit=limit)
    finally:
        db.close()
    logger.info("Hold expiry sweep completed", extra={"expired": len(expired)})
    return {"expired": len(expired)}
