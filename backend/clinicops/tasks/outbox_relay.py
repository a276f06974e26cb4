# backend/clinicops/tasks/outbox_relay.py
"""
Relay of committed scheduling events to in-process listeners.

Rows are picked from the outbox, rebuilt into typed events and dispatched
through ``SchedulingEvents``. A row whose listeners fail is retried with
backoff until ``outbox_max_attempts`` is reached.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, Optional

from celery.utils.log import get_task_logger
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.timezone_utils import utc_now
from ..database import SessionLocal
from ..events.scheduling_events import SchedulingEvents, parse_event
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.event_outbox_repository import EventOutboxRepository
from .celery_app import celery_app

logger = get_task_logger(__name__)

BACKOFF_SECONDS = [15, 60, 300, 900, 3600]


def next_backoff(attempt_number: int) -> int:
    """Return backoff delay for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Provide transactional scope for use in tasks."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def relay_batch(
    session: Session,
    *,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
    max_attempts: Optional[int] = None,
) -> Dict[str, int]:
    """Dispatch one batch of due outbox rows; returns counts by outcome."""
    repo = EventOutboxRepository(session)
    now = now or utc_now()
    max_attempts = max_attempts or settings.outbox_max_attempts
    counts = {"sent": 0, "retry": 0, "failed": 0}

    for row in repo.fetch_pending(now, limit=limit or settings.outbox_relay_batch_size):
        attempt_number = (row.attempt_count or 0) + 1
        try:
            event = parse_event(row.event_type, dict(row.payload or {}))
        except (ValueError, ValidationError) as exc:
            logger.error("Outbox event %s is unreadable: %s", row.id, exc)
            repo.mark_failed(
                row.id,
                attempt_count=attempt_number,
                backoff_seconds=0,
                error=str(exc),
                terminal=True,
            )
            prometheus_metrics.record_outbox_outcome(row.event_type, "failed")
            counts["failed"] += 1
            continue

        failed_listeners = SchedulingEvents.dispatch(event)
        if not failed_listeners:
            repo.mark_sent(row.id, attempt_number)
            prometheus_metrics.record_outbox_outcome(row.event_type, "sent")
            counts["sent"] += 1
            continue

        error = "listeners failed: " + ", ".join(failed_listeners)
        if attempt_number >= max_attempts:
            logger.error(
                "Outbox event %s failed permanently after %s attempts", row.id, attempt_number
            )
            repo.mark_failed(
                row.id,
                attempt_count=attempt_number,
                backoff_seconds=0,
                error=error,
                terminal=True,
            )
            prometheus_metrics.record_outbox_outcome(row.event_type, "failed")
            counts["failed"] += 1
        else:
            backoff = next_backoff(attempt_number)
            logger.warning(
                "Retrying outbox event %s attempt=%s backoff=%ss", row.id, attempt_number, backoff
            )
            repo.mark_failed(
                row.id,
                attempt_count=attempt_number,
                backoff_seconds=backoff,
                error=error,
            )
            prometheus_metrics.record_outbox_outcome(row.event_type, "retry")
            counts["retry"] += 1

    return counts


@celery_app.task(name="outbox.relay_pending", max_retries=0)
def relay_pending() -> Dict[str, int]:
    """Fetch due outbox rows and hand them to registered listeners."""
    with _session_scope() as session:
        counts = relay_batch(session)
    if any(counts.values()):
        logger.info(
            "Relayed scheduling events sent=%s retry=%s failed=%s",
            counts["sent"],
            counts["retry"],
            counts["failed"],
        )
    return counts
