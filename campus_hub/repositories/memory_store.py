"""
In-memory event store used when no relational store is configured.

State lives for the lifetime of the process. A single lock serialises
mutations so request threads see consistent rows.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Sequence

from campus_hub.models.notification import NotificationType

from .base import EventStore
from .records import EventRecord, NotificationRecord, PendingReminder, ReminderFlagUpdate, SweepLeaseState


@dataclass
class _SavedRow:
    user_id: str
    event_id: str
    reminder_24h_sent: bool = False
    reminder_1h_sent: bool = False
    created_at: datetime | None = None


def _event_sort_key(event: EventRecord):
    return (event.date, event.time is not None, event.time or datetime.min.time())


class InMemoryEventStore(EventStore):
    """Event store keeping every row in process memory."""

    def __init__(self, events: Iterable[EventRecord] = ()):
        self._lock = threading.RLock()
        self._events: dict[str, EventRecord] = {}
        self._saved: dict[tuple[str, str], _SavedRow] = {}
        self._notifications: dict[int, NotificationRecord] = {}
        self._notification_ids = itertools.count(1)
        self._leases: dict[str, SweepLeaseState] = {}
        for event in events:
            self._events[event.id] = replace(event)

    # Events

    def list_events(self, *, approved_only: bool = False) -> list[EventRecord]:
        with self._lock:
            events = [e for e in self._events.values() if e.is_approved or not approved_only]
            return [replace(e) for e in sorted(events, key=_event_sort_key)]

    def get_event(self, event_id: str) -> EventRecord | None:
        with self._lock:
            event = self._events.get(event_id)
            return replace(event) if event else None

    def add_event(self, event: EventRecord) -> EventRecord:
        stored = replace(
            event,
            id=event.id or str(uuid.uuid4()),
            is_approved=False,
            created_at=event.created_at or datetime.now(timezone.utc),
        )
        with self._lock:
            self._events[stored.id] = stored
        return replace(stored)

    def approve_event(self, event_id: str) -> EventRecord | None:
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                return None
            event.is_approved = True
            return replace(event)

    def delete_events(self, event_ids: Iterable[str]) -> int:
        ids = set(event_ids)
        with self._lock:
            for key in [k for k in self._saved if k[1] in ids]:
                del self._saved[key]
            for notification_id in [n.id for n in self._notifications.values() if n.event_id in ids]:
                del self._notifications[notification_id]
            deleted = 0
            for event_id in ids:
                if self._events.pop(event_id, None) is not None:
                    deleted += 1
            return deleted

    def list_events_dated_on_or_before(self, cutoff: date) -> list[EventRecord]:
        with self._lock:
            events = [e for e in self._events.values() if e.date <= cutoff]
            return [replace(e) for e in sorted(events, key=_event_sort_key)]

    # Save registry

    def save_event(self, user_id: str, event_id: str) -> bool:
        with self._lock:
            if (user_id, event_id) in self._saved:
                return False
            self._saved[(user_id, event_id)] = _SavedRow(
                user_id=user_id, event_id=event_id, created_at=datetime.now(timezone.utc)
            )
            return True

    def unsave_event(self, user_id: str, event_id: str) -> bool:
        with self._lock:
            return self._saved.pop((user_id, event_id), None) is not None

    def is_saved(self, user_id: str, event_id: str) -> bool:
        with self._lock:
            return (user_id, event_id) in self._saved

    def list_saved_events(self, user_id: str) -> list[EventRecord]:
        with self._lock:
            events = [
                self._events[row.event_id]
                for row in self._saved.values()
                if row.user_id == user_id and row.event_id in self._events
            ]
            return [replace(e) for e in sorted(events, key=_event_sort_key)]

    def count_saved(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for row in self._saved.values() if row.user_id == user_id)

    def list_pending_reminders(self, *, user_id: str | None = None) -> list[PendingReminder]:
        with self._lock:
            pending = []
            for row in self._saved.values():
                event = self._events.get(row.event_id)
                if event is None:
                    continue
                if user_id is not None:
                    if row.user_id != user_id:
                        continue
                elif row.reminder_24h_sent and row.reminder_1h_sent:
                    continue
                pending.append(
                    PendingReminder(
                        user_id=row.user_id,
                        event_id=row.event_id,
                        title=event.title,
                        date=event.date,
                        time=event.time,
                        venue=event.venue,
                        reminder_24h_sent=row.reminder_24h_sent,
                        reminder_1h_sent=row.reminder_1h_sent,
                    )
                )
            return pending

    def upsert_reminder_flags(self, updates: Sequence[ReminderFlagUpdate]) -> int:
        written = 0
        with self._lock:
            for update in updates:
                row = self._saved.get((update.user_id, update.event_id))
                if row is None:
                    continue
                row.reminder_24h_sent = row.reminder_24h_sent or update.reminder_24h_sent
                row.reminder_1h_sent = row.reminder_1h_sent or update.reminder_1h_sent
                written += 1
        return written

    # Notifications

    def add_notification(
        self,
        user_id: str,
        notification_type: NotificationType,
        message: str,
        *,
        event_id: str | None = None,
    ) -> NotificationRecord:
        with self._lock:
            record = NotificationRecord(
                id=next(self._notification_ids),
                user_id=user_id,
                type=notification_type,
                message=message,
                event_id=event_id,
                created_at=datetime.now(timezone.utc),
            )
            self._notifications[record.id] = record
            return replace(record)

    def list_notifications(self, user_id: str) -> list[NotificationRecord]:
        with self._lock:
            rows = [n for n in self._notifications.values() if n.user_id == user_id]
            rows.sort(key=lambda n: (n.created_at, n.id), reverse=True)
            return [replace(n) for n in rows]

    def mark_notifications_read(self, user_id: str, notification_ids: Iterable[int]) -> int:
        updated = 0
        with self._lock:
            for notification_id in notification_ids:
                record = self._notifications.get(notification_id)
                if record is None or record.user_id != user_id:
                    continue
                record.is_read = True
                updated += 1
        return updated

    def count_unread_notifications(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for n in self._notifications.values() if n.user_id == user_id and not n.is_read)

    # Leases

    def acquire_lease(self, name: str, holder: str, *, now: datetime, ttl_seconds: int) -> bool:
        with self._lock:
            lease = self._leases.get(name)
            if lease is not None and lease.holder != holder and lease.expires_at > now:
                return False
            self._leases[name] = SweepLeaseState(
                name=name, holder=holder, expires_at=now + timedelta(seconds=ttl_seconds)
            )
            return True

    def release_lease(self, name: str, holder: str) -> None:
        with self._lock:
            lease = self._leases.get(name)
            if lease is not None and lease.holder == holder:
                del self._leases[name]
