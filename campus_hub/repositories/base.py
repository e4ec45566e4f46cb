"""
Event store interface shared by the SQLAlchemy and in-memory adapters.

The services only ever talk to :class:`EventStore`; which adapter backs it is
decided once at application start (``EVENT_STORE_BACKEND``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Iterable, Sequence

from campus_hub.models.notification import NotificationType

from .records import EventRecord, NotificationRecord, PendingReminder, ReminderFlagUpdate


class EventStore(ABC):
    """Persistence boundary for events, saves, notifications and sweep leases."""

    # Events

    @abstractmethod
    def list_events(self, *, approved_only: bool = False) -> list[EventRecord]:
        """Return events ordered by date ascending."""

    @abstractmethod
    def get_event(self, event_id: str) -> EventRecord | None:
        ...

    @abstractmethod
    def add_event(self, event: EventRecord) -> EventRecord:
        """Persist a new event. ``is_approved`` is forced to False."""

    @abstractmethod
    def approve_event(self, event_id: str) -> EventRecord | None:
        """Flip the approval flag; returns None when the event does not exist."""

    @abstractmethod
    def delete_events(self, event_ids: Iterable[str]) -> int:
        """Delete events with their saves and notifications. Returns events removed."""

    @abstractmethod
    def list_events_dated_on_or_before(self, cutoff: date) -> list[EventRecord]:
        ...

    # Save registry

    @abstractmethod
    def save_event(self, user_id: str, event_id: str) -> bool:
        """Create the (user, event) row. Returns False when it already existed."""

    @abstractmethod
    def unsave_event(self, user_id: str, event_id: str) -> bool:
        """Remove the (user, event) row. Returns False when nothing was saved."""

    @abstractmethod
    def is_saved(self, user_id: str, event_id: str) -> bool:
        ...

    @abstractmethod
    def list_saved_events(self, user_id: str) -> list[EventRecord]:
        ...

    @abstractmethod
    def count_saved(self, user_id: str) -> int:
        ...

    @abstractmethod
    def list_pending_reminders(self, *, user_id: str | None = None) -> list[PendingReminder]:
        """Rows for the reminder sweep.

        With ``user_id`` every row of that user is returned regardless of flags;
        otherwise only rows where at least one flag is still unset.
        """

    @abstractmethod
    def upsert_reminder_flags(self, updates: Sequence[ReminderFlagUpdate]) -> int:
        """Persist staged flags keyed by (user, event) in one batch.

        Flags are merged with logical OR so a stored ``True`` is never lowered.
        Rows removed since they were read are skipped. Returns rows written.
        """

    # Notifications

    @abstractmethod
    def add_notification(
        self,
        user_id: str,
        notification_type: NotificationType,
        message: str,
        *,
        event_id: str | None = None,
    ) -> NotificationRecord:
        ...

    @abstractmethod
    def list_notifications(self, user_id: str) -> list[NotificationRecord]:
        """Return a user's notifications, newest first."""

    @abstractmethod
    def mark_notifications_read(self, user_id: str, notification_ids: Iterable[int]) -> int:
        ...

    @abstractmethod
    def count_unread_notifications(self, user_id: str) -> int:
        ...

    # Leases

    @abstractmethod
    def acquire_lease(self, name: str, holder: str, *, now: datetime, ttl_seconds: int) -> bool:
        """Take or renew the named lease unless another holder owns a live one."""

    @abstractmethod
    def release_lease(self, name: str, holder: str) -> None:
        ...
