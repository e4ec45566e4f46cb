# campus_hub/services/notification_service.py
"""
In-app alerts inbox and push device registration.
"""

from __future__ import annotations

import logging

from flask import Flask, current_app

from campus_hub.errors import NotificationDispatchError
from campus_hub.integrations.notifications import NotificationDispatcher
from campus_hub.repositories import EventStore
from campus_hub.repositories.records import NotificationRecord
from campus_hub.services.change_feed import NOTIFICATIONS_TOPIC, ChangeFeed

logger = logging.getLogger(__name__)

BROADCAST_TOPIC_NAME = "All Campus Events"


class NotificationService:
    def __init__(
        self,
        store: EventStore,
        dispatcher: NotificationDispatcher,
        change_feed: ChangeFeed,
        *,
        broadcast_topic: str = "all-campus-events",
        log: logging.Logger | None = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.change_feed = change_feed
        self.broadcast_topic = broadcast_topic
        self.log = log or logger

    @classmethod
    def from_app(cls, app: Flask | None = None) -> "NotificationService":
        from campus_hub.extensions import get_change_feed, get_dispatcher, get_event_store

        app = app or current_app
        return cls(
            get_event_store(app),
            get_dispatcher(app),
            get_change_feed(app),
            broadcast_topic=app.config.get("NOVU_BROADCAST_TOPIC", "all-campus-events"),
            log=app.logger,
        )

    def open_inbox(self, user_id: str) -> list[NotificationRecord]:
        """
        Return the user's alerts newest first and mark the unread ones as read.

        The returned records keep the read state they had before the call so
        the client can highlight what is new.
        """
        notifications = self.store.list_notifications(user_id)
        unread = [n.id for n in notifications if not n.is_read]
        if unread:
            self.store.mark_notifications_read(user_id, unread)
            self.change_feed.publish(user_id, NOTIFICATIONS_TOPIC, {"unread": 0})
        return notifications

    def counts(self, user_id: str) -> dict[str, int]:
        return {
            "saved": self.store.count_saved(user_id),
            "unread_notifications": self.store.count_unread_notifications(user_id),
        }

    def register_device(self, subscriber_id: str, device_token: str) -> bool:
        """
        Store the device token with the provider and join the broadcast topic.

        Token registration failures propagate; topic failures are logged and
        reported through the return value.
        """
        self.dispatcher.set_push_token(subscriber_id, device_token)
        try:
            self.dispatcher.ensure_topic(self.broadcast_topic, BROADCAST_TOPIC_NAME)
            self.dispatcher.subscribe_to_topic(self.broadcast_topic, subscriber_id)
        except NotificationDispatchError as e:
            self.log.error(f"Failed to subscribe {subscriber_id} to topic {self.broadcast_topic}: {str(e)}")
            return False
        self.log.info(f"Subscribed {subscriber_id} to topic {self.broadcast_topic}")
        return True

    def unregister_device(self, subscriber_id: str) -> None:
        self.dispatcher.remove_push_token(subscriber_id)
        try:
            self.dispatcher.unsubscribe_from_topic(self.broadcast_topic, subscriber_id)
        except NotificationDispatchError as e:
            self.log.warning(f"Failed to unsubscribe {subscriber_id} from topic {self.broadcast_topic}: {str(e)}")
