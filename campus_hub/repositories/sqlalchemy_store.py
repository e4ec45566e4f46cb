"""
SQLAlchemy-backed event store.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Sequence

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from campus_hub.models import Event, Notification, NotificationType, SavedEvent, SweepLease, db

from .base import EventStore
from .records import EventRecord, NotificationRecord, PendingReminder, ReminderFlagUpdate


def _normalize_datetime(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class SQLAlchemyEventStore(EventStore):
    """Event store persisting through the Flask-SQLAlchemy session."""

    def __init__(self, session: Session | None = None):
        self.session: Session = session or db.session

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"Database error while trying to {action}: {str(e)}")
            raise

    # Events

    def list_events(self, *, approved_only: bool = False) -> list[EventRecord]:
        query = self.session.query(Event)
        if approved_only:
            query = query.filter(Event.is_approved.is_(True))
        query = query.order_by(Event.date.asc(), Event.time.asc())
        return [event.to_record() for event in query.all()]

    def get_event(self, event_id: str) -> EventRecord | None:
        event = self.session.get(Event, event_id)
        return event.to_record() if event else None

    def add_event(self, event: EventRecord) -> EventRecord:
        model = Event(
            id=event.id or str(uuid.uuid4()),
            title=event.title,
            description=event.description or "",
            date=event.date,
            time=event.time,
            venue=event.venue,
            category=event.category,
            image_url=event.image_url,
            document_url=event.document_url,
            organizer=event.organizer,
            is_approved=False,
            created_by=event.created_by,
            user_id=event.user_id,
            registration_link=event.registration_link,
            social_link=event.social_link,
            entry_fee=event.entry_fee,
            expected_audience=event.expected_audience,
        )
        self.session.add(model)
        self._commit(f"add event '{event.title}'")
        return model.to_record()

    def approve_event(self, event_id: str) -> EventRecord | None:
        event = self.session.get(Event, event_id)
        if event is None:
            return None
        event.is_approved = True
        self._commit(f"approve event {event_id}")
        return event.to_record()

    def delete_events(self, event_ids: Iterable[str]) -> int:
        ids = list(dict.fromkeys(event_ids))
        if not ids:
            return 0
        self.session.query(SavedEvent).filter(SavedEvent.event_id.in_(ids)).delete(synchronize_session=False)
        self.session.query(Notification).filter(Notification.event_id.in_(ids)).delete(
            synchronize_session=False
        )
        deleted = self.session.query(Event).filter(Event.id.in_(ids)).delete(synchronize_session=False)
        self._commit(f"delete {len(ids)} events")
        self.session.expire_all()
        return deleted

    def list_events_dated_on_or_before(self, cutoff: date) -> list[EventRecord]:
        query = self.session.query(Event).filter(Event.date <= cutoff).order_by(Event.date.asc())
        return [event.to_record() for event in query.all()]

    # Save registry

    def _saved_row(self, user_id: str, event_id: str) -> SavedEvent | None:
        return self.session.query(SavedEvent).filter_by(user_id=user_id, event_id=event_id).first()

    def save_event(self, user_id: str, event_id: str) -> bool:
        if self._saved_row(user_id, event_id) is not None:
            return False
        self.session.add(SavedEvent(user_id=user_id, event_id=event_id))
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent save won the race; the row exists either way.
            self.session.rollback()
            current_app.logger.info(f"Save of event {event_id} by user {user_id} already recorded")
            return False
        return True

    def unsave_event(self, user_id: str, event_id: str) -> bool:
        removed = (
            self.session.query(SavedEvent)
            .filter_by(user_id=user_id, event_id=event_id)
            .delete(synchronize_session=False)
        )
        self._commit(f"unsave event {event_id} for user {user_id}")
        return removed > 0

    def is_saved(self, user_id: str, event_id: str) -> bool:
        return self._saved_row(user_id, event_id) is not None

    def list_saved_events(self, user_id: str) -> list[EventRecord]:
        query = (
            self.session.query(Event)
            .join(SavedEvent, SavedEvent.event_id == Event.id)
            .filter(SavedEvent.user_id == user_id)
            .order_by(Event.date.asc(), Event.time.asc())
        )
        return [event.to_record() for event in query.all()]

    def count_saved(self, user_id: str) -> int:
        return self.session.query(SavedEvent).filter_by(user_id=user_id).count()

    def list_pending_reminders(self, *, user_id: str | None = None) -> list[PendingReminder]:
        query = self.session.query(SavedEvent, Event).join(Event, SavedEvent.event_id == Event.id)
        if user_id is not None:
            query = query.filter(SavedEvent.user_id == user_id)
        else:
            query = query.filter(
                or_(SavedEvent.reminder_24h_sent.is_(False), SavedEvent.reminder_1h_sent.is_(False))
            )
        return [
            PendingReminder(
                user_id=saved.user_id,
                event_id=saved.event_id,
                title=event.title,
                date=event.date,
                time=event.time,
                venue=event.venue,
                reminder_24h_sent=bool(saved.reminder_24h_sent),
                reminder_1h_sent=bool(saved.reminder_1h_sent),
            )
            for saved, event in query.all()
        ]

    def upsert_reminder_flags(self, updates: Sequence[ReminderFlagUpdate]) -> int:
        written = 0
        for update in updates:
            row = self._saved_row(update.user_id, update.event_id)
            if row is None:
                continue
            row.reminder_24h_sent = bool(row.reminder_24h_sent or update.reminder_24h_sent)
            row.reminder_1h_sent = bool(row.reminder_1h_sent or update.reminder_1h_sent)
            written += 1
        if written:
            self._commit(f"persist {written} reminder flag updates")
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
        notification = Notification(user_id=user_id, type=notification_type, message=message, event_id=event_id)
        self.session.add(notification)
        self._commit(f"add {notification_type.value} notification for user {user_id}")
        return notification.to_record()

    def list_notifications(self, user_id: str) -> list[NotificationRecord]:
        query = (
            self.session.query(Notification)
            .filter_by(user_id=user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return [notification.to_record() for notification in query.all()]

    def mark_notifications_read(self, user_id: str, notification_ids: Iterable[int]) -> int:
        ids = list(notification_ids)
        if not ids:
            return 0
        updated = (
            self.session.query(Notification)
            .filter(Notification.user_id == user_id, Notification.id.in_(ids))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self._commit(f"mark {len(ids)} notifications read")
        return updated

    def count_unread_notifications(self, user_id: str) -> int:
        return self.session.query(Notification).filter_by(user_id=user_id, is_read=False).count()

    # Leases

    def acquire_lease(self, name: str, holder: str, *, now: datetime, ttl_seconds: int) -> bool:
        """
        Take or renew the lease ``name``.

        The takeover is a single conditional UPDATE, so of two sweeps that both
        saw an expired row only one gets a row count of 1.
        """
        now = _normalize_datetime(now)
        expires_at = now + timedelta(seconds=ttl_seconds)

        taken = (
            self.session.query(SweepLease)
            .filter(SweepLease.name == name, or_(SweepLease.holder == holder, SweepLease.expires_at <= now))
            .update({"holder": holder, "expires_at": expires_at}, synchronize_session=False)
        )
        if taken:
            self._commit(f"take lease {name}")
            return True

        if self.session.query(SweepLease.name).filter_by(name=name).first() is not None:
            self.session.rollback()
            return False

        self.session.add(SweepLease(name=name, holder=holder, expires_at=expires_at))
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return False
        return True

    def release_lease(self, name: str, holder: str) -> None:
        self.session.query(SweepLease).filter_by(name=name, holder=holder).delete(synchronize_session=False)
        self._commit(f"release lease {name}")
