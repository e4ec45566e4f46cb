"""
Plain records exchanged between the event store adapters and the services.

Both store adapters return these instead of ORM instances so the sweeps and
routes behave identically whichever backend is active.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any

from campus_hub.models.event.enums import EventCategory
from campus_hub.models.notification import NotificationType


def combine_event_datetime(event_date: date, event_time: time | None, tz: tzinfo) -> datetime:
    """Combine an event's calendar date and local clock time into an aware instant.

    A missing time is treated as midnight.
    """
    return datetime.combine(event_date, event_time or time(0, 0), tzinfo=tz)


def format_event_time(event_time: time | None) -> str | None:
    if event_time is None:
        return None
    return event_time.strftime("%H:%M")


@dataclass
class EventRecord:
    """A campus event as seen by the services and the JSON API."""

    id: str
    title: str
    date: date
    venue: str
    category: EventCategory
    organizer: str
    created_by: str
    description: str = ""
    time: time | None = None
    image_url: str | None = None
    document_url: str | None = None
    is_approved: bool = False
    user_id: str | None = None
    registration_link: str | None = None
    social_link: str | None = None
    entry_fee: str | None = None
    expected_audience: str | None = None
    created_at: datetime | None = None

    def starts_at(self, tz: tzinfo) -> datetime:
        return combine_event_datetime(self.date, self.time, tz)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["date"] = self.date.isoformat()
        payload["time"] = format_event_time(self.time)
        payload["category"] = self.category.value
        payload["created_at"] = self.created_at.isoformat() if self.created_at else None
        return payload


@dataclass(frozen=True)
class PendingReminder:
    """A Save Registry row joined with the event fields the reminder sweep needs."""

    user_id: str
    event_id: str
    title: str
    date: date
    time: time | None
    venue: str
    reminder_24h_sent: bool
    reminder_1h_sent: bool

    def hours_until_start(self, now: datetime, tz: tzinfo) -> float:
        delta: timedelta = combine_event_datetime(self.date, self.time, tz) - now
        return delta.total_seconds() / 3600


@dataclass(frozen=True)
class ReminderFlagUpdate:
    """Staged flag advancement keyed by (user, event)."""

    user_id: str
    event_id: str
    reminder_24h_sent: bool
    reminder_1h_sent: bool


@dataclass
class NotificationRecord:
    id: int
    user_id: str
    type: NotificationType
    message: str
    event_id: str | None = None
    is_read: bool = False
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type.value,
            "message": self.message,
            "event_id": self.event_id,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class SweepLeaseState:
    name: str
    holder: str
    expires_at: datetime
