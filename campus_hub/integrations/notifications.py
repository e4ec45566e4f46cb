"""
Notification provider adapters.

A dispatcher addresses one subscriber (or a broadcast topic) with a named
workflow and a structured payload. Any failure surfaces as
``NotificationDispatchError`` so callers can isolate it per recipient.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from campus_hub.errors import NotificationDispatchError

logger = logging.getLogger(__name__)

# Workflow identifiers configured in the provider
REMINDER_WORKFLOW = "event-reminder"
EVENT_APPROVED_WORKFLOW = "event-approved"
EVENT_REJECTED_WORKFLOW = "event-rejected"
NEW_EVENT_WORKFLOW = "new-event"

FCM_PROVIDER_ID = "fcm"


@dataclass(frozen=True)
class Recipient:
    """Either a single subscriber or a topic."""

    subscriber_id: str | None = None
    topic_key: str | None = None

    @classmethod
    def subscriber(cls, subscriber_id: str) -> "Recipient":
        return cls(subscriber_id=subscriber_id)

    @classmethod
    def topic(cls, topic_key: str) -> "Recipient":
        return cls(topic_key=topic_key)

    def to_payload(self) -> Any:
        if self.topic_key:
            return [{"type": "Topic", "topicKey": self.topic_key}]
        return {"subscriberId": self.subscriber_id}


class NotificationDispatcher(ABC):
    """Outbound notification sink."""

    @abstractmethod
    def trigger(self, workflow: str, recipient: Recipient, payload: Mapping[str, Any]) -> None:
        ...

    @abstractmethod
    def set_push_token(self, subscriber_id: str, device_token: str) -> None:
        ...

    @abstractmethod
    def remove_push_token(self, subscriber_id: str) -> None:
        ...

    @abstractmethod
    def ensure_topic(self, topic_key: str, name: str) -> None:
        """Create the topic if it does not exist yet."""

    @abstractmethod
    def subscribe_to_topic(self, topic_key: str, subscriber_id: str) -> None:
        ...

    @abstractmethod
    def unsubscribe_from_topic(self, topic_key: str, subscriber_id: str) -> None:
        ...


class NovuDispatcher(NotificationDispatcher):
    """Novu REST API client."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.novu.co",
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"ApiKey {api_key}"})

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationDispatchError(f"Notification provider call {method} {path} failed: {exc}") from exc
        return response

    def trigger(self, workflow: str, recipient: Recipient, payload: Mapping[str, Any]) -> None:
        self._request(
            "POST",
            "/v1/events/trigger",
            json={"name": workflow, "to": recipient.to_payload(), "payload": dict(payload)},
        )

    def set_push_token(self, subscriber_id: str, device_token: str) -> None:
        self._request(
            "PUT",
            f"/v1/subscribers/{subscriber_id}/credentials",
            json={"providerId": FCM_PROVIDER_ID, "credentials": {"deviceTokens": [device_token]}},
        )

    def remove_push_token(self, subscriber_id: str) -> None:
        self._request("DELETE", f"/v1/subscribers/{subscriber_id}/credentials/{FCM_PROVIDER_ID}")

    def ensure_topic(self, topic_key: str, name: str) -> None:
        try:
            response = self.session.post(
                f"{self.base_url}/v1/topics", json={"key": topic_key, "name": name}, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise NotificationDispatchError(f"Could not create topic {topic_key}: {exc}") from exc
        # 409 means the topic already exists
        if response.status_code not in (200, 201, 409):
            raise NotificationDispatchError(f"Could not create topic {topic_key}: HTTP {response.status_code}")

    def subscribe_to_topic(self, topic_key: str, subscriber_id: str) -> None:
        self._request("POST", f"/v1/topics/{topic_key}/subscribers", json={"subscribers": [subscriber_id]})

    def unsubscribe_from_topic(self, topic_key: str, subscriber_id: str) -> None:
        self._request(
            "POST", f"/v1/topics/{topic_key}/subscribers/removal", json={"subscribers": [subscriber_id]}
        )


@dataclass
class LoggingDispatcher(NotificationDispatcher):
    """Development dispatcher: logs and records every call."""

    sent: list[tuple[str, Recipient, dict[str, Any]]] = field(default_factory=list)
    # Only the most recent calls are kept
    max_recorded: int = 500
    push_tokens: dict[str, str] = field(default_factory=dict)
    topics: dict[str, set[str]] = field(default_factory=dict)

    def trigger(self, workflow: str, recipient: Recipient, payload: Mapping[str, Any]) -> None:
        logger.info("Notification %s -> %s: %s", workflow, recipient, dict(payload))
        self.sent.append((workflow, recipient, dict(payload)))
        if len(self.sent) > self.max_recorded:
            del self.sent[: len(self.sent) - self.max_recorded]

    def set_push_token(self, subscriber_id: str, device_token: str) -> None:
        self.push_tokens[subscriber_id] = device_token

    def remove_push_token(self, subscriber_id: str) -> None:
        self.push_tokens.pop(subscriber_id, None)

    def ensure_topic(self, topic_key: str, name: str) -> None:
        self.topics.setdefault(topic_key, set())

    def subscribe_to_topic(self, topic_key: str, subscriber_id: str) -> None:
        self.topics.setdefault(topic_key, set()).add(subscriber_id)

    def unsubscribe_from_topic(self, topic_key: str, subscriber_id: str) -> None:
        self.topics.get(topic_key, set()).discard(subscriber_id)
