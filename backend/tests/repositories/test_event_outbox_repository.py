# backend/tests/repositories/test_event_outbox_repository.py
"""
Tests for EventOutboxRepository.

Tests cover:
- Idempotent enqueue keyed by event id
- Pending fetch ordering and due filtering
- Delivery state transitions (mark_sent, mark_failed)
"""

from datetime import timedelta

from clinicops.core.timezone_utils import utc_now
from clinicops.core.ulid_helper import generate_ulid
from clinicops.models.event_outbox import EventOutboxStatus
from clinicops.repositories.event_outbox_repository import EventOutboxRepository
from tests.conftest import TENANT_ID


def _enqueue(repo, event_id=None, **overrides):
    values = {
        "event_id": event_id or generate_ulid(),
        "tenant_id": TENANT_ID,
        "event_type": "HoldCreated",
        "aggregate_id": "hold-1",
        "payload": {"hold_id": "hold-1"},
    }
    values.update(overrides)
    return repo.enqueue(**values)


class TestEnqueue:
    def test_enqueue_creates_pending_row(self, db):
        repo = EventOutboxRepository(db)

        row = _enqueue(repo)

        assert row.status == EventOutboxStatus.PENDING.value
        assert row.attempt_count == 0
        assert row.idempotency_key == row.id
        assert row.payload == {"hold_id": "hold-1"}

    def test_enqueue_same_event_twice_keeps_one_row(self, db):
        repo = EventOutboxRepository(db)
        event_id = generate_ulid()

        first = _enqueue(repo, event_id, payload={"attempt": 1})
        second = _enqueue(repo, event_id, payload={"attempt": 2})

        assert first.id == second.id
        assert second.payload == {"attempt": 1}
        assert len(repo.list_for_aggregate("hold-1")) == 1


class TestFetchPending:
    def test_skips_rows_not_yet_due(self, db):
        repo = EventOutboxRepository(db)
        now = utc_now()
        due = _enqueue(repo, next_attempt_at=now - timedelta(seconds=5))
        _enqueue(repo, next_attempt_at=now + timedelta(minutes=5))

        assert [row.id for row in repo.fetch_pending(now)] == [due.id]

    def test_sent_rows_not_returned(self, db):
        repo = EventOutboxRepository(db)
        row = _enqueue(repo)
        repo.mark_sent(row.id, attempt_count=1)

        assert repo.fetch_pending(utc_now() + timedelta(seconds=1)) == []


class TestMarkFailed:
    def test_retry_pushes_next_attempt(self, db):
        repo = EventOutboxRepository(db)
        row = _enqueue(repo)

        repo.mark_failed(row.id, attempt_count=1, backoff_seconds=60, error="boom")
        db.refresh(row)

        assert row.status == EventOutboxStatus.PENDING.value
        assert row.attempt_count == 1
        assert row.last_error == "boom"
        assert row.next_attempt_at > utc_now() + timedelta(seconds=30)

    def test_terminal_failure(self, db):
        repo = EventOutboxRepository(db)
        row = _enqueue(repo)

        repo.mark_failed(row.id, attempt_count=8, backoff_seconds=0, error="x" * 2000, terminal=True)
        db.refresh(row)

        assert row.status == EventOutboxStatus.FAILED.value
        assert len(row.last_error) == 1000
