"""
Per-user change notifications for saves and in-app alerts.

Subscribers register a callback for a user id; services publish after they
mutate that user's saves or notifications. The feed does not care how the
change reaches a client (polling ``/api/me/counts``, a push channel, ...).
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

SAVES_TOPIC = "saves"
NOTIFICATIONS_TOPIC = "notifications"

Listener = Callable[[str, str, dict[str, Any]], None]


class ChangeFeed:
    """In-process observer registry keyed by user id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, user_id: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener(user_id, topic, payload)``; returns an unsubscribe callable."""
        with self._lock:
            self._listeners[user_id].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(user_id, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(user_id, None)

        return unsubscribe

    def publish(self, user_id: str, topic: str, payload: dict[str, Any] | None = None) -> int:
        """Deliver a change to the user's listeners. Returns how many were called."""
        with self._lock:
            listeners = list(self._listeners.get(user_id, ()))
        for listener in listeners:
            try:
                listener(user_id, topic, payload or {})
            except Exception:
                logger.exception("Change feed listener failed for user %s topic %s", user_id, topic)
        return len(listeners)

    def subscriber_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._listeners.get(user_id, ()))
