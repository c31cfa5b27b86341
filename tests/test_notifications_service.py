"""
Tests for participant notifications (sorteos.services.notifications).
"""

import pytest

from sorteos.exceptions import MissingRequiredFieldError, NotFoundError, ValidationError
from sorteos.services import notifications


class TestLoadNotifications:
    def test_newest_first_for_owner_only(self, store):
        data = notifications.load_notifications(store, "user-1")
        assert [n["id"] for n in data["notifications"]] == ["notif-prize", "notif-raffle", "notif-read"]
        assert data["unread_count"] == 2

    def test_unread_count_covers_rows_beyond_limit(self, store):
        data = notifications.load_notifications(store, "user-1", limit=1)
        assert [n["id"] for n in data["notifications"]] == ["notif-prize"]
        assert data["unread_count"] == 2

    def test_empty(self, store):
        data = notifications.load_notifications(store, "admin-1")
        assert data == {"notifications": [], "unread_count": 0}


class TestMarkRead:
    def test_mark_one(self, store):
        row = notifications.mark_notification_read(store, "user-1", "notif-raffle")
        assert row["read"] is True
        assert row["updated_at"]
        assert notifications.load_notifications(store, "user-1")["unread_count"] == 1

    def test_already_read_is_unchanged(self, store):
        row = notifications.mark_notification_read(store, "user-1", "notif-read")
        assert row["read"] is True
        assert "updated_at" not in row

    def test_other_users_notification_is_not_found(self, store):
        with pytest.raises(NotFoundError):
            notifications.mark_notification_read(store, "user-1", "notif-other")
        assert store.get("notifications", "notif-other")["read"] is False

    def test_mark_all(self, store):
        assert notifications.mark_all_notifications_read(store, "user-1") == 2
        assert notifications.load_notifications(store, "user-1")["unread_count"] == 0
        # Other users keep their unread notifications
        assert store.get("notifications", "notif-other")["read"] is False

    def test_mark_all_with_nothing_unread(self, store):
        assert notifications.mark_all_notifications_read(store, "admin-1") == 0


class TestDelete:
    def test_delete_own(self, store):
        notifications.delete_notification(store, "user-1", "notif-read")
        assert store.get("notifications", "notif-read") is None

    def test_cannot_delete_others(self, store):
        with pytest.raises(NotFoundError):
            notifications.delete_notification(store, "user-1", "notif-other")
        assert store.get("notifications", "notif-other") is not None


class TestCreateNotification:
    def form(self, **overrides):
        form = {"user_id": "user-2", "title": "Recordatorio", "message": "El sorteo cierra mañana."}
        form.update(overrides)
        return form

    def test_defaults(self, store):
        row = notifications.create_notification(store, self.form())
        assert row["type"] == "info"
        assert row["read"] is False
        assert row["action_url"] is None
        assert notifications.load_notifications(store, "user-2")["unread_count"] == 2

    @pytest.mark.parametrize("url", ["/app/boletos", "https://example.com/sorteo"])
    def test_action_url_accepted(self, store, url):
        assert notifications.create_notification(store, self.form(action_url=url))["action_url"] == url

    @pytest.mark.parametrize("url", ["//evil.example", "javascript:alert(1)", "ftp://example.com"])
    def test_action_url_rejected(self, store, url):
        with pytest.raises(ValidationError):
            notifications.create_notification(store, self.form(action_url=url))

    def test_unknown_type(self, store):
        with pytest.raises(ValidationError):
            notifications.create_notification(store, self.form(type="urgent"))

    def test_missing_title(self, store):
        with pytest.raises(MissingRequiredFieldError):
            notifications.create_notification(store, self.form(title="  "))

    def test_unknown_user(self, store):
        with pytest.raises(NotFoundError):
            notifications.create_notification(store, self.form(user_id="ghost"))
