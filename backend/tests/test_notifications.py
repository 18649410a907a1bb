from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from rma_tracker import models
from rma_tracker.domain_errors import NotFoundError
from rma_tracker.services.notifications import (
    PASSWORD_RESET_REQUEST,
    count_unread_notifications,
    create_notification,
    delete_notification,
    emit_notification,
    list_notifications,
    list_unread_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)


def _seed(db, count: int) -> list[models.Notification]:
    base = datetime(2026, 5, 1, tzinfo=timezone.utc)
    rows = [
        models.Notification(type="INFO", message=f"message {index}", created_at=base + timedelta(minutes=index))
        for index in range(count)
    ]
    db.add_all(rows)
    db.commit()
    return rows


def test_create_notification_is_unread_with_serialized_metadata(db) -> None:
    notification = create_notification(
        db,
        type=PASSWORD_RESET_REQUEST,
        message="reset",
        metadata={"email": "a@example.com"},
    )

    assert notification.is_read is False
    assert json.loads(notification.meta_data) == {"email": "a@example.com"}
    assert count_unread_notifications(db) == 1


def test_list_notifications_newest_first_with_paging(db) -> None:
    _seed(db, 5)

    page = list_notifications(db, limit=2, offset=1)

    assert [row.message for row in page] == ["message 3", "message 2"]


def test_mark_read_and_unread_views(db) -> None:
    rows = _seed(db, 3)

    mark_notification_read(db, rows[2].id)

    assert [row.message for row in list_unread_notifications(db)] == ["message 1", "message 0"]
    assert count_unread_notifications(db) == 2


def test_mark_all_read_returns_affected_count(db) -> None:
    rows = _seed(db, 3)
    mark_notification_read(db, rows[0].id)

    assert mark_all_notifications_read(db) == 2
    assert count_unread_notifications(db) == 0
    assert mark_all_notifications_read(db) == 0


def test_delete_notification(db) -> None:
    rows = _seed(db, 2)
    delete_notification(db, rows[0].id)
    assert [row.message for row in list_notifications(db)] == ["message 1"]


@pytest.mark.parametrize("operation", [mark_notification_read, delete_notification])
def test_unknown_notification_is_not_found(db, operation) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        operation(db, "missing")
    assert exc_info.value.code == "NOTIFICATION_NOT_FOUND"


class _BrokenSession:
    def __init__(self) -> None:
        self.rolled_back = False

    def add(self, _obj) -> None:
        return None

    def commit(self) -> None:
        raise OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))

    def rollback(self) -> None:
        self.rolled_back = True


def test_emit_notification_swallows_storage_errors() -> None:
    session = _BrokenSession()
    assert emit_notification(session, type="INFO", message="hello") is None
    assert session.rolled_back is True
