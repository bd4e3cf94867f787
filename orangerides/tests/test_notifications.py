"""
Tests for the admin notification sink.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from orangerides.core.errors import NotFoundError
from orangerides.features.notifications import service as notifications
from orangerides.models.notification import NotificationEventType


def test_append_is_unread_and_listed():
    nid = notifications.append("Ada Rides subscribed", NotificationEventType.NEW_SUBSCRIPTION, owner_name="Ada Rides", plan="Weekly")
    items = notifications.list_notifications()
    assert len(items) == 1
    assert items[0].id == nid
    assert items[0].read is False
    assert items[0].event_type == NotificationEventType.NEW_SUBSCRIPTION
    assert notifications.unread_count() == 1


def test_list_newest_first():
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    first = notifications.append("first", "new_owner", now=base)
    second = notifications.append("second", "new_owner", now=base + timedelta(minutes=5))
    tied = notifications.append("tied", "new_owner", now=base + timedelta(minutes=5))
    ids = [n.id for n in notifications.list_notifications()]
    assert ids == [tied, second, first]


def test_mark_read_and_unread_filter():
    a = notifications.append("a", "limit_warning")
    notifications.append("b", "limit_warning")
    notifications.mark_read(a)
    unread = notifications.list_notifications(unread_only=True)
    assert [n.message for n in unread] == ["b"]
    assert notifications.unread_count() == 1


def test_mark_all_read_clears_unread_count():
    for i in range(3):
        notifications.append(f"n{i}", "payment_failed")
    assert notifications.mark_all_read() == 3
    assert notifications.unread_count() == 0
    assert notifications.mark_all_read() == 0


def test_mark_read_unknown_id():
    with pytest.raises(NotFoundError):
        notifications.mark_read(9999)


def test_delete_notification():
    nid = notifications.append("gone soon", "new_owner")
    notifications.delete_notification(nid)
    assert notifications.list_notifications() == []
    with pytest.raises(NotFoundError):
        notifications.delete_notification(nid)


def test_unknown_event_type_rejected():
    with pytest.raises(ValueError):
        notifications.append("bad", "something_else")


def test_append_best_effort_swallows_failures():
    with patch("orangerides.features.notifications.service.append", side_effect=RuntimeError("db down")):
        assert notifications.append_best_effort("x", "new_owner") is None
