from datetime import timedelta

import pytest
from pydantic import ValidationError

from clinicops.events.scheduling_events import (
    EVENT_TYPES,
    BookingCancelled,
    HoldCreated,
    SchedulingEvents,
    parse_event,
    register_listener,
    unregister_listener,
)
from tests.conftest import NOW, PATIENT_ID, PROFESSIONAL_ID, SUBSTITUTE_ID, TENANT_ID


def _hold_created(**overrides):
    values = {
        "tenant_id": TENANT_ID,
        "hold_id": "hold-1",
        "clinic_id": "clinic-1",
        "professional_id": SUBSTITUTE_ID,
        "original_professional_id": PROFESSIONAL_ID,
        "coverage_id": "cov-1",
        "patient_id": PATIENT_ID,
        "start_at_utc": NOW + timedelta(hours=2),
        "end_at_utc": NOW + timedelta(hours=3),
        "ttl_expires_at_utc": NOW + timedelta(minutes=30),
        "occurred_at": NOW,
    }
    values.update(overrides)
    return HoldCreated(**values)


class TestEventModels:
    def test_payload_rebuilds_same_event(self):
        event = _hold_created()

        rebuilt = parse_event(event.event_name, event.to_dict())

        assert rebuilt == event
        assert rebuilt.aggregate_id == "hold-1"

    def test_unknown_event_name(self):
        with pytest.raises(ValueError):
            parse_event("scheduling.unknown", {})

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            _hold_created(surprise=True)

    def test_event_ids_are_unique(self):
        assert _hold_created().event_id != _hold_created().event_id

    def test_every_event_type_registered_by_name(self):
        assert EVENT_TYPES[HoldCreated.event_name] is HoldCreated
        assert EVENT_TYPES[BookingCancelled.event_name] is BookingCancelled
        assert len(EVENT_TYPES) == 10


class TestSchedulingEvents:
    def test_dispatch_to_matching_listeners(self):
        received_all, received_holds, received_bookings = [], [], []
        register_listener(received_all.append)
        register_listener(received_holds.append, HoldCreated.event_name)
        register_listener(received_bookings.append, BookingCancelled.event_name)
        event = _hold_created()

        failed = SchedulingEvents.dispatch(event)

        assert failed == []
        assert received_all == [event]
        assert received_holds == [event]
        assert received_bookings == []

    def test_failing_listener_does_not_stop_others(self):
        received = []

        def broken_listener(event):
            raise RuntimeError("listener down")

        register_listener(broken_listener)
        register_listener(received.append)

        failed = SchedulingEvents.dispatch(_hold_created())

        assert failed == ["broken_listener"]
        assert len(received) == 1

    def test_unregister(self):
        received = []
        register_listener(received.append)
        unregister_listener(received.append)

        SchedulingEvents.dispatch(_hold_created())

        assert received == []

    def test_register_unknown_event_name(self):
        with pytest.raises(ValueError):
            register_listener(lambda event: None, "scheduling.nope")
