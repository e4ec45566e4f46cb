# campus_hub/services/event_service.py
"""
Event lifecycle and Save Registry operations behind the JSON API.

Approval and rejection write an in-app alert for the creator and send the
matching push workflow; approval also announces the event on the broadcast
topic. A failed push never undoes the database change.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Iterable, Mapping

from flask import Flask, current_app

from campus_hub.errors import EventNotFoundError, NotificationDispatchError
from campus_hub.integrations.notifications import (
    EVENT_APPROVED_WORKFLOW,
    EVENT_REJECTED_WORKFLOW,
    NEW_EVENT_WORKFLOW,
    NotificationDispatcher,
    Recipient,
)
from campus_hub.integrations.storage import BlobStorage
from campus_hub.models.notification import NotificationType
from campus_hub.models.user import User
from campus_hub.repositories import EventStore
from campus_hub.repositories.records import EventRecord, format_event_time
from campus_hub.services.assets import delete_event_assets
from campus_hub.services.change_feed import NOTIFICATIONS_TOPIC, SAVES_TOPIC, ChangeFeed
from campus_hub.services.retention_service import RetentionSweep

logger = logging.getLogger(__name__)


class EventService:
    def __init__(
        self,
        store: EventStore,
        dispatcher: NotificationDispatcher,
        storage: BlobStorage,
        change_feed: ChangeFeed,
        *,
        retention: RetentionSweep | None = None,
        broadcast_topic: str = "all-campus-events",
        placeholder_hosts: Iterable[str] = ("picsum.photos",),
        audience: Callable[[], Iterable[str]] | None = None,
        log: logging.Logger | None = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.storage = storage
        self.change_feed = change_feed
        self.retention = retention
        self.broadcast_topic = broadcast_topic
        self.placeholder_hosts = tuple(placeholder_hosts)
        self.audience = audience
        self.log = log or logger

    @classmethod
    def from_app(cls, app: Flask | None = None) -> "EventService":
        from campus_hub.extensions import get_change_feed, get_dispatcher, get_event_store, get_storage

        app = app or current_app
        return cls(
            get_event_store(app),
            get_dispatcher(app),
            get_storage(app),
            get_change_feed(app),
            retention=RetentionSweep.from_app(app) if app.config.get("RETENTION_ON_LIST", True) else None,
            broadcast_topic=app.config.get("NOVU_BROADCAST_TOPIC", "all-campus-events"),
            placeholder_hosts=app.config.get("PLACEHOLDER_IMAGE_HOSTS", ("picsum.photos",)),
            audience=User.active_ids,
            log=app.logger,
        )

    # Browsing

    def list_events(self, *, include_unapproved: bool = False, viewer_id: str | None = None) -> list[EventRecord]:
        """
        List events, running the retention sweep first when it is enabled.

        Without ``include_unapproved`` only approved events are returned,
        plus the viewer's own pending submissions.
        """
        if self.retention is not None:
            try:
                self.retention.run()
            except Exception as e:
                self.log.error(f"Retention sweep during listing failed: {str(e)}", exc_info=True)
        if include_unapproved:
            return self.store.list_events()
        if viewer_id is None:
            return self.store.list_events(approved_only=True)
        return [e for e in self.store.list_events() if e.is_approved or e.user_id == viewer_id]

    def get_event(self, event_id: str, *, viewer_id: str | None = None, viewer_is_admin: bool = False) -> EventRecord:
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        if not event.is_approved and not viewer_is_admin and (viewer_id is None or event.user_id != viewer_id):
            raise EventNotFoundError(f"Event {event_id} not found")
        return event

    # Lifecycle

    def submit(self, data: Mapping[str, Any], *, user_id: str, email: str) -> EventRecord:
        event = EventRecord(
            id=str(uuid.uuid4()),
            title=data["title"],
            description=data.get("description") or "",
            date=data["date"],
            time=data.get("time"),
            venue=data["venue"],
            category=data["category"],
            organizer=data["organizer"],
            created_by=email,
            user_id=user_id,
            image_url=data.get("image_url"),
            document_url=data.get("document_url"),
            registration_link=data.get("registration_link"),
            social_link=data.get("social_link"),
            entry_fee=data.get("entry_fee"),
            expected_audience=data.get("expected_audience"),
            is_approved=False,
        )
        created = self.store.add_event(event)
        self.log.info(f"Event {created.id} '{created.title}' submitted by {email}")
        return created

    def approve(self, event_id: str) -> EventRecord:
        """Approve an event and announce it. Approving an approved event notifies nobody."""
        current = self.store.get_event(event_id)
        if current is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        if current.is_approved:
            self.log.info(f"Event {event_id} already approved; no notifications sent")
            return current

        event = self.store.approve_event(event_id)
        if event is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        self.log.info(f"Event {event.id} approved")

        if event.user_id:
            self._notify_creator(
                event,
                NotificationType.EVENT_APPROVED,
                f'Your event "{event.title}" has been approved and is now live.',
                EVENT_APPROVED_WORKFLOW,
                event_id=event.id,
            )
        if self.audience is not None:
            message = f'New event: "{event.title}" at {event.venue} on {event.date.isoformat()}.'
            for user_id in self.audience():
                if user_id == event.user_id:
                    continue
                notification = self.store.add_notification(
                    user_id, NotificationType.NEW_EVENT, message, event_id=event.id
                )
                self.change_feed.publish(user_id, NOTIFICATIONS_TOPIC, {"notification": notification.to_dict()})
        self._push(
            NEW_EVENT_WORKFLOW,
            Recipient.topic(self.broadcast_topic),
            {
                "eventId": event.id,
                "eventName": event.title,
                "venue": event.venue,
                "date": event.date.isoformat(),
                "startTime": format_event_time(event.time) or "TBA",
                "category": event.category.value,
                "url": f"/events/{event.id}",
            },
        )
        return event

    def reject(self, event_id: str) -> None:
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        if event.user_id:
            # Unlinked, since deleting the event removes alerts that reference it
            self._notify_creator(
                event,
                NotificationType.EVENT_REJECTED,
                f'Your event "{event.title}" was not approved.',
                EVENT_REJECTED_WORKFLOW,
                event_id=None,
            )
        self._delete(event)
        self.log.info(f"Event {event.id} rejected")

    def delete(self, event_id: str) -> None:
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        self._delete(event)
        self.log.info(f"Event {event.id} deleted")

    def _delete(self, event: EventRecord) -> None:
        delete_event_assets(self.storage, [event], placeholder_hosts=self.placeholder_hosts, log=self.log)
        self.store.delete_events([event.id])

    def _notify_creator(
        self,
        event: EventRecord,
        notification_type: NotificationType,
        message: str,
        workflow: str,
        *,
        event_id: str | None,
    ) -> None:
        notification = self.store.add_notification(event.user_id, notification_type, message, event_id=event_id)
        self.change_feed.publish(event.user_id, NOTIFICATIONS_TOPIC, {"notification": notification.to_dict()})
        self._push(
            workflow,
            Recipient.subscriber(event.user_id),
            {"eventId": event.id, "eventName": event.title, "body": message, "url": f"/events/{event.id}"},
        )

    def _push(self, workflow: str, recipient: Recipient, payload: dict[str, Any]) -> None:
        try:
            self.dispatcher.trigger(workflow, recipient, payload)
        except NotificationDispatchError as e:
            self.log.warning(f"Push {workflow} to {recipient} failed: {str(e)}")

    # Save registry

    def save(self, user_id: str, event_id: str) -> bool:
        """Save an event for a user. Returns True when a new row was created."""
        if self.store.get_event(event_id) is None:
            raise EventNotFoundError(f"Event {event_id} not found")
        created = self.store.save_event(user_id, event_id)
        if created:
            self._publish_saves(user_id, event_id, saved=True)
        return created

    def unsave(self, user_id: str, event_id: str) -> bool:
        removed = self.store.unsave_event(user_id, event_id)
        if removed:
            self._publish_saves(user_id, event_id, saved=False)
        return removed

    def is_saved(self, user_id: str, event_id: str) -> bool:
        return self.store.is_saved(user_id, event_id)

    def list_saved(self, user_id: str) -> list[EventRecord]:
        return self.store.list_saved_events(user_id)

    def _publish_saves(self, user_id: str, event_id: str, *, saved: bool) -> None:
        self.change_feed.publish(
            user_id,
            SAVES_TOPIC,
            {"event_id": event_id, "saved": saved, "count": self.store.count_saved(user_id)},
        )
