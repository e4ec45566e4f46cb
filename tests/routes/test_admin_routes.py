"""
Tests for the admin sweep triggers
"""

from datetime import date, timedelta

import pytest

from campus_hub.services import ReminderSweep


@pytest.mark.parametrize(
    "path",
    ["/api/admin/reminders/trigger", "/api/admin/storage-cleanup", "/api/admin/retention/run"],
)
class TestAdminOnly:
    def test_anonymous(self, client, path):
        assert client.post(path).status_code == 401

    def test_regular_user(self, client, user_headers, path):
        response = client.post(path, headers=user_headers)
        assert response.status_code == 403
        assert response.get_json() == {"error": "Admin privileges required"}


class TestReminderTrigger:
    """Test POST /api/admin/reminders/trigger"""

    def test_regular_sweep(self, client, admin_headers):
        response = client.post("/api/admin/reminders/trigger", headers=admin_headers)

        assert response.status_code == 200
        payload = response.get_json()
        assert payload["message"] == "Reminder sweep complete"
        assert payload["test_mode"] is False
        assert payload["sent_24h"] == 0

    @pytest.mark.parametrize("body", [{"test_mode": True}, {"testMode": "true"}])
    def test_test_mode_targets_caller(
        self, client, make_event, store, admin_user, test_user, admin_headers, dispatcher, body
    ):
        event = make_event(date=date.today() + timedelta(days=30))
        store.save_event(admin_user.id, event.id)
        store.save_event(test_user.id, event.id)

        response = client.post("/api/admin/reminders/trigger", json=body, headers=admin_headers)

        payload = response.get_json()
        assert payload["test_mode"] is True
        assert payload["sent_1h"] == 1
        assert [recipient.subscriber_id for _, recipient, _ in dispatcher.sent] == [admin_user.id]

    @pytest.mark.parametrize("body", [[1], True, "test_mode"])
    def test_non_object_body_rejected(self, client, admin_headers, dispatcher, body):
        response = client.post("/api/admin/reminders/trigger", json=body, headers=admin_headers)

        assert response.status_code == 400
        assert response.get_json() == {"error": "Request body must be a JSON object"}
        assert dispatcher.sent == []

    def test_skipped_when_lease_held(self, client, store, admin_headers):
        from campus_hub.services.reminder_service import LEASE_NAME
        from campus_hub.utils.time import utcnow

        store.acquire_lease(LEASE_NAME, "other-worker", now=utcnow(), ttl_seconds=300)

        payload = client.post("/api/admin/reminders/trigger", headers=admin_headers).get_json()

        assert payload["message"] == "Reminder sweep skipped"
        assert payload["skipped"] is True

    def test_failure_returns_500(self, client, admin_headers, monkeypatch):
        def boom(self, **kwargs):
            raise RuntimeError("store offline")

        monkeypatch.setattr(ReminderSweep, "run", boom)
        response = client.post("/api/admin/reminders/trigger", headers=admin_headers)

        assert response.status_code == 500
        assert response.get_json() == {"error": "store offline"}


class TestStorageCleanup:
    """Test POST /api/admin/storage-cleanup"""

    def test_deletes_orphans(self, client, make_event, storage, admin_headers):
        storage.upload("orphan.png", b"data")
        kept = storage.upload("kept.png", b"data")
        make_event(image_url=kept)

        response = client.post("/api/admin/storage-cleanup", headers=admin_headers)

        assert response.status_code == 200
        assert response.get_json() == {"deleted": 1, "total": 2, "errors": 0}
        assert storage.list_objects() == ["kept.png"]


class TestRetentionRun:
    """Test POST /api/admin/retention/run"""

    def test_removes_expired_events(self, client, make_event, store, admin_headers):
        old = make_event(date=date.today() - timedelta(days=10))
        current = make_event(date=date.today())

        response = client.post("/api/admin/retention/run", headers=admin_headers)

        payload = response.get_json()
        assert payload["deleted_events"] == 1
        assert payload["cutoff"] == (date.today() - timedelta(days=7)).isoformat()
        assert store.get_event(old.id) is None
        assert store.get_event(current.id) is not None
