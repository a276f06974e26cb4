from unittest.mock import MagicMock

from clinicops.tasks import hold_expiry


def test_expire_due_holds_task(monkeypatch):
    mock_db = MagicMock()
    monkeypatch.setattr(hold_expiry, "SessionLocal", MagicMock(return_value=mock_db))

    mock_service = MagicMock()
    mock_service.expire_due_holds.return_value = ["hold-1", "hold-2"]
    service_cls = MagicMock(return_value=mock_service)
    monkeypatch.setattr(hold_expiry, "HoldService", service_cls)

    result = hold_expiry.expire_due_holds_task(limit=50)

    assert result == {"expired": 2}
    service_cls.assert_called_once_with(mock_db)
    mock_service.expire_due_holds.assert_called_once_with(limit=50)
    mock_db.close.assert_called_once()


def test_beat_schedule_lists_periodic_tasks():
    from clinicops.tasks.beat_schedule import get_beat_schedule

    tasks = {entry["task"] for entry in get_beat_schedule().values()}

    assert tasks == {"holds.expire_due", "outbox.relay_pending"}
