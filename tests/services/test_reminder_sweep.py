# tests/services/test_reminder_sweep.py
"""
Unit tests for the reminder sweep
"""

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from campus_hub.errors import NotificationDispatchError
from campus_hub.integrations.notifications import REMINDER_WORKFLOW, LoggingDispatcher
from campus_hub.models import SavedEvent
from campus_hub.repositories import InMemoryEventStore
from campus_hub.repositories.records import PendingReminder
from campus_hub.services.reminder_service import (
    LEASE_NAME,
    ReminderSettings,
    ReminderSweep,
    ReminderWindow,
    build_reminder_payload,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FlakyDispatcher(LoggingDispatcher):
    """Records triggers but fails for the given subscribers"""

    def __init__(self, failing=()):
        super().__init__()
        self.failing = set(failing)

    def trigger(self, workflow, recipient, payload):
        if recipient.subscriber_id in self.failing:
            raise NotificationDispatchError("provider unavailable")
        super().trigger(workflow, recipient, payload)


def starting_in(hours, now=NOW):
    start = now + timedelta(hours=hours)
    return {"date": start.date(), "time": start.time()}


@pytest.fixture
def saved_event(memory_store, make_event):
    """Save an approved event starting ``hours`` after NOW for each user"""

    def _saved_event(hours, users=("u1",), **overrides):
        event = make_event(target_store=memory_store, **starting_in(hours), **overrides)
        for user_id in users:
            memory_store.save_event(user_id, event.id)
        return event

    return _saved_event


def flags(store, user_id, event_id):
    for row in store.list_pending_reminders(user_id=user_id):
        if row.event_id == event_id:
            return row.reminder_24h_sent, row.reminder_1h_sent
    raise AssertionError(f"no saved row for {user_id}/{event_id}")


class TestReminderWindow:
    """Test window boundaries"""

    def test_upper_bound_is_inclusive(self):
        window = ReminderWindow("24h", 23.0, 25.0)
        assert window.contains(25.0)
        assert window.contains(24.0)

    def test_lower_bound_is_exclusive(self):
        window = ReminderWindow("24h", 23.0, 25.0)
        assert not window.contains(23.0)
        assert not window.contains(25.01)

    def test_settings_from_config(self):
        settings = ReminderSettings.from_config(
            {
                "REMINDER_24H_WINDOW_START": "20",
                "REMINDER_24H_WINDOW_END": 26,
                "REMINDER_1H_WINDOW_START": 0,
                "REMINDER_1H_WINDOW_END": 2,
                "REMINDER_SWEEP_LEASE_SECONDS": 60,
                "EVENT_TIMEZONE": "UTC",
            }
        )
        assert settings.window_24h == ReminderWindow("24h", 20.0, 26.0)
        assert settings.window_1h == ReminderWindow("1h", 0.0, 2.0)
        assert settings.lease_seconds == 60
        assert settings.timezone is timezone.utc


class TestReminderPayload:
    """Test the notification payload"""

    def _reminder(self, event_time):
        return PendingReminder(
            user_id="u1",
            event_id="evt-1",
            title="Annual Mushaira",
            date=NOW.date(),
            time=event_time,
            venue="Kennedy Hall",
            reminder_24h_sent=False,
            reminder_1h_sent=False,
        )

    def test_24h_payload(self):
        payload = build_reminder_payload(self._reminder(time(18, 0)), "24h")
        assert payload["title"] == "Still planning to go? 📅"
        assert payload["body"] == '"Annual Mushaira" starts tomorrow at 18:00 in Kennedy Hall.'
        assert payload["eventId"] == "evt-1"
        assert payload["startTime"] == "18:00"
        assert payload["type"] == "24h"
        assert payload["url"] == "/events/evt-1"

    def test_1h_payload(self):
        payload = build_reminder_payload(self._reminder(time(18, 0)), "1h")
        assert payload["title"] == "Starting in 1 hour! ⏰"
        assert payload["body"] == 'Get ready! "Annual Mushaira" is about to kick off at Kennedy Hall.'

    def test_missing_time_is_tba(self):
        payload = build_reminder_payload(self._reminder(None), "24h")
        assert payload["startTime"] == "TBA"
        assert "at TBA in Kennedy Hall" in payload["body"]


class TestReminderSweep:
    """Test ReminderSweep.run against the in-memory store"""

    def test_sends_24h_reminder_once(self, memory_store, saved_event):
        dispatcher = LoggingDispatcher()
        event = saved_event(24)
        sweep = ReminderSweep(memory_store, dispatcher)

        summary = sweep.run(now=NOW)
        assert summary.sent_24h == 1
        assert summary.sent_1h == 0
        assert summary.processed == 1
        assert flags(memory_store, "u1", event.id) == (True, False)

        workflow, recipient, payload = dispatcher.sent[0]
        assert workflow == REMINDER_WORKFLOW
        assert recipient.subscriber_id == "u1"
        assert payload["type"] == "24h"

        # A second sweep inside the same window sends nothing
        again = sweep.run(now=NOW + timedelta(minutes=15))
        assert again.sent_24h == 0
        assert len(dispatcher.sent) == 1

    @pytest.mark.parametrize("hours", [26, 22, 3, -0.1])
    def test_outside_windows_sends_nothing(self, memory_store, saved_event, hours):
        dispatcher = LoggingDispatcher()
        event = saved_event(hours)

        summary = ReminderSweep(memory_store, dispatcher).run(now=NOW)

        assert summary.sent_24h == 0
        assert summary.sent_1h == 0
        assert summary.processed == 0
        assert summary.pending == 1
        assert dispatcher.sent == []
        assert flags(memory_store, "u1", event.id) == (False, False)

    def test_sends_1h_reminder(self, memory_store, saved_event):
        dispatcher = LoggingDispatcher()
        event = saved_event(0.5)

        summary = ReminderSweep(memory_store, dispatcher).run(now=NOW)

        assert summary.sent_1h == 1
        assert flags(memory_store, "u1", event.id) == (False, True)
        assert dispatcher.sent[0][2]["type"] == "1h"

    def test_both_windows_in_one_pass(self, memory_store, saved_event):
        dispatcher = LoggingDispatcher()
        event = saved_event(1)
        settings = ReminderSettings(window_24h=ReminderWindow("24h", 0.0, 25.0))

        summary = ReminderSweep(memory_store, dispatcher, settings).run(now=NOW)

        assert summary.sent_24h == 1
        assert summary.sent_1h == 1
        assert summary.processed == 1
        assert flags(memory_store, "u1", event.id) == (True, True)
        # Fully flagged rows drop out of the pending set
        assert memory_store.list_pending_reminders() == []

    def test_previously_sent_flag_is_kept(self, memory_store, saved_event):
        dispatcher = LoggingDispatcher()
        event = saved_event(0.5)
        ReminderSweep(
            memory_store, dispatcher, ReminderSettings(window_24h=ReminderWindow("24h", 0.0, 25.0))
        ).run(now=NOW - timedelta(hours=20))
        assert flags(memory_store, "u1", event.id) == (True, False)

        ReminderSweep(memory_store, dispatcher).run(now=NOW)
        assert flags(memory_store, "u1", event.id) == (True, True)

    def test_failure_is_isolated_and_retried(self, memory_store, saved_event):
        dispatcher = FlakyDispatcher(failing={"u1"})
        event = saved_event(24, users=("u1", "u2"))
        sweep = ReminderSweep(memory_store, dispatcher)

        summary = sweep.run(now=NOW)
        assert summary.sent_24h == 1
        assert summary.errors == 1
        assert summary.processed == 1
        assert flags(memory_store, "u1", event.id) == (False, False)
        assert flags(memory_store, "u2", event.id) == (True, False)

        dispatcher.failing.clear()
        retry = sweep.run(now=NOW + timedelta(minutes=15))
        assert retry.sent_24h == 1
        assert retry.errors == 0
        assert flags(memory_store, "u1", event.id) == (True, False)
        assert [recipient.subscriber_id for _, recipient, _ in dispatcher.sent] == ["u2", "u1"]

    def test_test_mode_only_touches_requesting_user(self, memory_store, saved_event):
        dispatcher = LoggingDispatcher()
        first = saved_event(24 * 10, users=("admin", "u2"))
        second = saved_event(24 * 20, users=("admin",))

        summary = ReminderSweep(memory_store, dispatcher).run(now=NOW, test_user_id="admin")

        assert summary.test_mode is True
        assert summary.sent_1h == 2
        assert summary.sent_24h == 0
        assert {recipient.subscriber_id for _, recipient, _ in dispatcher.sent} == {"admin"}
        assert flags(memory_store, "admin", first.id) == (False, True)
        assert flags(memory_store, "admin", second.id) == (False, True)
        assert flags(memory_store, "u2", first.id) == (False, False)

    def test_test_mode_resends_already_flagged_rows(self, memory_store, saved_event):
        dispatcher = LoggingDispatcher()
        saved_event(24 * 3, users=("admin",))
        sweep = ReminderSweep(memory_store, dispatcher)

        sweep.run(now=NOW, test_user_id="admin")
        summary = sweep.run(now=NOW, test_user_id="admin")

        assert summary.sent_1h == 1
        assert len(dispatcher.sent) == 2

    def test_skips_when_lease_is_held(self, memory_store, saved_event):
        dispatcher = LoggingDispatcher()
        saved_event(24)
        assert memory_store.acquire_lease(LEASE_NAME, "other-worker", now=NOW, ttl_seconds=300)

        summary = ReminderSweep(memory_store, dispatcher).run(now=NOW)

        assert summary.skipped is True
        assert summary.pending == 0
        assert dispatcher.sent == []

    def test_expired_lease_is_taken_over(self, memory_store, saved_event):
        dispatcher = LoggingDispatcher()
        saved_event(24)
        memory_store.acquire_lease(LEASE_NAME, "crashed-worker", now=NOW - timedelta(minutes=10), ttl_seconds=300)

        summary = ReminderSweep(memory_store, dispatcher).run(now=NOW)

        assert summary.skipped is False
        assert summary.sent_24h == 1

    def test_lease_released_after_run(self, memory_store, saved_event):
        saved_event(24)
        ReminderSweep(memory_store, LoggingDispatcher()).run(now=NOW)
        assert memory_store.acquire_lease(LEASE_NAME, "next-worker", now=NOW, ttl_seconds=300)

    def test_persist_failure_is_reported(self, memory_store, saved_event, monkeypatch):
        dispatcher = LoggingDispatcher()
        event = saved_event(24)

        def boom(updates):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(memory_store, "upsert_reminder_flags", boom)
        summary = ReminderSweep(memory_store, dispatcher).run(now=NOW)

        assert summary.sent_24h == 1
        assert summary.processed == 0
        assert summary.persist_failed is True
        assert flags(memory_store, "u1", event.id) == (False, False)
        # The lease is still released
        assert memory_store.acquire_lease(LEASE_NAME, "next-worker", now=NOW, ttl_seconds=300)

    def test_row_removed_mid_sweep_is_skipped(self, memory_store, saved_event):
        event = saved_event(24)

        class UnsavingDispatcher(LoggingDispatcher):
            def trigger(self, workflow, recipient, payload):
                super().trigger(workflow, recipient, payload)
                memory_store.unsave_event(recipient.subscriber_id, payload["eventId"])

        summary = ReminderSweep(memory_store, UnsavingDispatcher()).run(now=NOW)

        assert summary.sent_24h == 1
        assert summary.processed == 0
        assert summary.persist_failed is False
        assert not memory_store.is_saved("u1", event.id)

    def test_event_times_use_configured_timezone(self, make_event):
        store = InMemoryEventStore()
        kolkata = ZoneInfo("Asia/Kolkata")
        local_start = NOW.astimezone(kolkata) + timedelta(hours=24)
        event = make_event(target_store=store, date=local_start.date(), time=local_start.time())
        store.save_event("u1", event.id)

        utc_summary = ReminderSweep(store, LoggingDispatcher()).run(now=NOW)
        assert utc_summary.sent_24h == 0

        local_summary = ReminderSweep(store, LoggingDispatcher(), ReminderSettings(timezone=kolkata)).run(now=NOW)
        assert local_summary.sent_24h == 1


class TestReminderSweepWithDatabase:
    """Test the sweep end to end through the SQLAlchemy store"""

    def test_flags_are_persisted(self, app, store, make_event, test_user):
        event = make_event(**starting_in(24))
        store.save_event(test_user.id, event.id)

        summary = ReminderSweep.from_app(app).run(now=NOW)

        assert summary.sent_24h == 1
        row = SavedEvent.query.filter_by(user_id=test_user.id, event_id=event.id).one()
        assert row.reminder_24h_sent is True
        assert row.reminder_1h_sent is False

    def test_lease_row_blocks_second_sweep(self, app, store, make_event, test_user):
        event = make_event(**starting_in(24))
        store.save_event(test_user.id, event.id)
        store.acquire_lease(LEASE_NAME, "other-worker", now=NOW, ttl_seconds=300)

        summary = ReminderSweep.from_app(app).run(now=NOW)

        assert summary.skipped is True
        row = SavedEvent.query.filter_by(user_id=test_user.id, event_id=event.id).one()
        assert row.reminder_24h_sent is False
