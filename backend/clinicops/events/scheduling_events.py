"""Typed scheduling events and the in-process listener registry."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Callable, ClassVar, Dict, List, Optional, Sequence, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid

logger = logging.getLogger("clinicops.events.scheduling")


class SchedulingEvent(BaseModel):
    """Base class for scheduling domain events."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    event_name: ClassVar[str] = ""

    event_id: str = Field(default_factory=generate_ulid)
    occurred_at: datetime = Field(default_factory=utc_now)
    tenant_id: str
    clinic_id: str
    professional_id: str
    patient_id: str

    @property
    def aggregate_id(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class HoldEvent(SchedulingEvent):
    hold_id: str

    @property
    def aggregate_id(self) -> str:
        return self.hold_id


class BookingEvent(SchedulingEvent):
    booking_id: str

    @property
    def aggregate_id(self) -> str:
        return self.booking_id


class HoldCreated(HoldEvent):
    """``professional_id`` is the effective professional after coverage."""

    event_name: ClassVar[str] = "scheduling.hold.created"

    original_professional_id: Optional[str] = None
    coverage_id: Optional[str] = None
    service_type_id: Optional[str] = None
    start_at_utc: datetime
    end_at_utc: datetime
    ttl_expires_at_utc: datetime


class HoldCancelled(HoldEvent):
    event_name: ClassVar[str] = "scheduling.hold.cancelled"

    cancelled_by: str
    reason: Optional[str] = None


class HoldExpired(HoldEvent):
    event_name: ClassVar[str] = "scheduling.hold.expired"

    ttl_expires_at_utc: datetime


class BookingCreated(BookingEvent):
    event_name: ClassVar[str] = "scheduling.booking.created"

    hold_id: Optional[str] = None
    original_professional_id: Optional[str] = None
    coverage_id: Optional[str] = None
    service_type_id: Optional[str] = None
    start_at_utc: datetime
    end_at_utc: datetime


class BookingConfirmed(BookingEvent):
    event_name: ClassVar[str] = "scheduling.booking.confirmed"

    payment_status: str


class BookingCancelled(BookingEvent):
    event_name: ClassVar[str] = "scheduling.booking.cancelled"

    cancelled_by: str
    previous_status: str
    reason: Optional[str] = None
    original_professional_id: Optional[str] = None
    coverage_id: Optional[str] = None


class BookingCompleted(BookingEvent):
    event_name: ClassVar[str] = "scheduling.booking.completed"

    completed_by: str
    completed_at: datetime


class BookingNoShow(BookingEvent):
    event_name: ClassVar[str] = "scheduling.booking.no_show"

    marked_by: str
    marked_at: datetime


class BookingRescheduled(BookingEvent):
    event_name: ClassVar[str] = "scheduling.booking.rescheduled"

    rescheduled_by: str
    previous_start_at_utc: datetime
    previous_end_at_utc: datetime
    start_at_utc: datetime
    end_at_utc: datetime


class PaymentStatusChanged(BookingEvent):
    event_name: ClassVar[str] = "scheduling.payment_status.changed"

    previous_status: str
    new_status: str
    changed_by: Optional[str] = None


AnySchedulingEvent = Union[
    HoldCreated,
    HoldCancelled,
    HoldExpired,
    BookingCreated,
    BookingConfirmed,
    BookingCancelled,
    BookingCompleted,
    BookingNoShow,
    BookingRescheduled,
    PaymentStatusChanged,
]

EVENT_TYPES: Dict[str, Type[SchedulingEvent]] = {
    cls.event_name: cls
    for cls in (
        HoldCreated,
        HoldCancelled,
        HoldExpired,
        BookingCreated,
        BookingConfirmed,
        BookingCancelled,
        BookingCompleted,
        BookingNoShow,
        BookingRescheduled,
        PaymentStatusChanged,
    )
}


def parse_event(event_name: str, payload: Dict[str, Any]) -> SchedulingEvent:
    """Rebuild a typed event from an outbox row."""
    try:
        event_cls = EVENT_TYPES[event_name]
    except KeyError:
        raise ValueError(f"Unknown scheduling event: {event_name}") from None
    return event_cls.model_validate(payload)


SchedulingEventListener = Callable[[SchedulingEvent], None]


class SchedulingEvents:
    """Registry for scheduling event listeners, optionally filtered by event name."""

    _listeners: List[tuple[Optional[str], SchedulingEventListener]] = []

    @classmethod
    def register(cls, listener: SchedulingEventListener, event_name: Optional[str] = None) -> None:
        if event_name is not None and event_name not in EVENT_TYPES:
            raise ValueError(f"Unknown scheduling event: {event_name}")
        cls._listeners.append((event_name, listener))

    @classmethod
    def unregister(cls, listener: SchedulingEventListener) -> None:
        cls._listeners = [entry for entry in cls._listeners if entry[1] != listener]

    @classmethod
    def clear(cls) -> None:
        cls._listeners = []

    @classmethod
    def listeners(cls, event_name: Optional[str] = None) -> Sequence[SchedulingEventListener]:
        return tuple(
            listener
            for name, listener in cls._listeners
            if name is None or event_name is None or name == event_name
        )

    @classmethod
    def dispatch(cls, event: SchedulingEvent) -> List[str]:
        """
        Deliver ``event`` to every matching listener.

        A failing listener does not stop the others; the names of the
        listeners that raised are returned so the caller can retry.
        """
        failed: List[str] = []
        for listener in cls.listeners(event.event_name):
            try:
                listener(event)
            except Exception:
                name = getattr(listener, "__name__", repr(listener))
                logger.exception("Scheduling event listener error: %s", name)
                failed.append(name)
        logger.info(
            "scheduling_event=%s aggregate=%s failed_listeners=%d",
            event.event_name,
            event.aggregate_id,
            len(failed),
        )
        return failed


def register_listener(listener: SchedulingEventListener, event_name: Optional[str] = None) -> None:
    """Register an in-process listener for scheduling events."""

    SchedulingEvents.register(listener, event_name)


def unregister_listener(listener: SchedulingEventListener) -> None:
    """Remove a previously registered listener."""

    SchedulingEvents.unregister(listener)
