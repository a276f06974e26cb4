"""Event publisher - writes scheduling events to the transactional outbox."""

import logging
from typing import Protocol

from ..models.event_outbox import EventOutbox
from ..repositories.event_outbox_repository import EventOutboxRepository
from .scheduling_events import SchedulingEvent

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    def publish(self, event: SchedulingEvent) -> None:
        ...


class EventPublisher:
    """Queues scheduling events in the caller's transaction."""

    def __init__(self, outbox_repository: EventOutboxRepository):
        self.outbox_repo = outbox_repository

    def publish(self, event: SchedulingEvent) -> None:
        """
        Stage ``event`` for delivery.

        The outbox row commits or rolls back together with the state change,
        and the relay task hands it to listeners afterwards.
        """
        row: EventOutbox = self.outbox_repo.enqueue(
            event_id=event.event_id,
            tenant_id=event.tenant_id,
            event_type=event.event_name,
            aggregate_id=event.aggregate_id,
            payload=event.to_dict(),
        )
        logger.debug(
            "Queued scheduling event",
            extra={"event_type": event.event_name, "aggregate_id": event.aggregate_id, "outbox_id": row.id},
        )
