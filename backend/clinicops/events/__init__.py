"""Scheduling domain events."""

from .publisher import EventPublisher, Publisher
from .scheduling_events import (
    EVENT_TYPES,
    AnySchedulingEvent,
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    BookingNoShow,
    BookingRescheduled,
    HoldCancelled,
    HoldCreated,
    HoldExpired,
    PaymentStatusChanged,
    SchedulingEvent,
    SchedulingEventListener,
    SchedulingEvents,
    parse_event,
    register_listener,
    unregister_listener,
)

__all__ = [
    "AnySchedulingEvent",
    "BookingCancelled",
    "BookingCompleted",
    "BookingConfirmed",
    "BookingCreated",
    "BookingNoShow",
    "BookingRescheduled",
    "EVENT_TYPES",
    "EventPublisher",
    "HoldCancelled",
    "HoldCreated",
    "HoldExpired",
    "PaymentStatusChanged",
    "Publisher",
    "SchedulingEvent",
    "SchedulingEventListener",
    "SchedulingEvents",
    "parse_event",
    "register_listener",
    "unregister_listener",
]
