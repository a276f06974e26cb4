from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from clinicops.core.exceptions import BookingConflictException, HoldConflictException
from clinicops.services.conflict_scanner import ConflictScanner
from tests.conftest import NOW, PROFESSIONAL_ID, TENANT_ID

START = NOW + timedelta(hours=2)
END = START + timedelta(hours=1)


def _booking(id_, status="confirmed", start=START, end=END):
    return SimpleNamespace(id=id_, status=status, start_at_utc=start, end_at_utc=end)


def _hold(id_, status="active", ttl=NOW + timedelta(minutes=10), start=START, end=END):
    return SimpleNamespace(
        id=id_, status=status, ttl_expires_at_utc=ttl, start_at_utc=start, end_at_utc=end
    )


@pytest.fixture
def lookups():
    bookings = MagicMock()
    bookings.list_by_professional_and_range.return_value = []
    holds = MagicMock()
    holds.find_active_overlap.return_value = []
    return bookings, holds


def test_clear_calendar_passes(lookups):
    ConflictScanner(*lookups).ensure_available(TENANT_ID, PROFESSIONAL_ID, START, END, NOW)


def test_booking_conflict_lists_ids(lookups):
    bookings, holds = lookups
    bookings.list_by_professional_and_range.return_value = [_booking("b-1")]

    with pytest.raises(BookingConflictException) as exc_info:
        ConflictScanner(bookings, holds).ensure_available(TENANT_ID, PROFESSIONAL_ID, START, END, NOW)

    assert exc_info.value.details == {"conflicting_booking_ids": ["b-1"]}
    holds.find_active_overlap.assert_not_called()


def test_non_blocking_rows_from_store_are_ignored(lookups):
    bookings, holds = lookups
    bookings.list_by_professional_and_range.return_value = [
        _booking("b-1", status="cancelled"),
        _booking("b-2", start=END, end=END + timedelta(hours=1)),
    ]
    holds.find_active_overlap.return_value = [
        _hold("h-1", status="expired"),
        _hold("h-2", ttl=NOW),
    ]

    ConflictScanner(bookings, holds).ensure_available(TENANT_ID, PROFESSIONAL_ID, START, END, NOW)


def test_hold_conflict(lookups):
    bookings, holds = lookups
    holds.find_active_overlap.return_value = [_hold("h-1")]

    with pytest.raises(HoldConflictException) as exc_info:
        ConflictScanner(bookings, holds).ensure_available(TENANT_ID, PROFESSIONAL_ID, START, END, NOW)

    assert exc_info.value.code == "HOLD_CONFLICT"


def test_excluded_booking_is_skipped(lookups):
    bookings, holds = lookups
    bookings.list_by_professional_and_range.return_value = [_booking("b-1")]

    ConflictScanner(bookings, holds).ensure_no_booking_conflict(
        TENANT_ID, PROFESSIONAL_ID, START, END, exclude_booking_id="b-1"
    )
