# campus_hub/services/reminder_service.py
"""
Reminder Sweep - sends at most one reminder per (user, event, window).

Every saved event carries two flags, ``reminder_24h_sent`` and
``reminder_1h_sent``. A sweep reads the rows with a flag still unset,
works out which reminder windows the event's start time falls into, sends
one notification per window and then writes all the flag changes back in a
single batch. A window whose dispatch failed is left unset, so the next
sweep tries it again.
"""

from __future__ import annotations

import logging
import os
import socket
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Mapping

from flask import Flask, current_app

from campus_hub.integrations.notifications import REMINDER_WORKFLOW, NotificationDispatcher, Recipient
from campus_hub.metrics import record_reminder_error, record_reminder_persist_failure, record_reminder_sent
from campus_hub.repositories import EventStore
from campus_hub.repositories.records import PendingReminder, ReminderFlagUpdate, format_event_time
from campus_hub.utils.time import resolve_timezone, utcnow

logger = logging.getLogger(__name__)

LEASE_NAME = "reminder-sweep"

WINDOW_24H = "24h"
WINDOW_1H = "1h"


@dataclass(frozen=True)
class ReminderWindow:
    """Half-open interval ``(lower, upper]`` in hours before the event starts"""

    label: str
    lower: float
    upper: float

    def contains(self, hours_until_start: float) -> bool:
        return self.lower < hours_until_start <= self.upper


@dataclass(frozen=True)
class ReminderSettings:
    window_24h: ReminderWindow = ReminderWindow(WINDOW_24H, 23.0, 25.0)
    window_1h: ReminderWindow = ReminderWindow(WINDOW_1H, 0.0, 1.5)
    lease_seconds: int = 300
    timezone: tzinfo = timezone.utc

    @classmethod
    def from_config(cls, config: Mapping[str, Any], tz: tzinfo | None = None) -> "ReminderSettings":
        return cls(
            window_24h=ReminderWindow(
                WINDOW_24H,
                float(config.get("REMINDER_24H_WINDOW_START", 23.0)),
                float(config.get("REMINDER_24H_WINDOW_END", 25.0)),
            ),
            window_1h=ReminderWindow(
                WINDOW_1H,
                float(config.get("REMINDER_1H_WINDOW_START", 0.0)),
                float(config.get("REMINDER_1H_WINDOW_END", 1.5)),
            ),
            lease_seconds=int(config.get("REMINDER_SWEEP_LEASE_SECONDS", 300)),
            timezone=tz or resolve_timezone(config.get("EVENT_TIMEZONE", "UTC")),
        )


@dataclass
class ReminderSweepSummary:
    sent_24h: int = 0
    sent_1h: int = 0
    errors: int = 0
    processed: int = 0
    pending: int = 0
    persist_failed: bool = False
    skipped: bool = False
    test_mode: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def build_reminder_payload(reminder: PendingReminder, window: str) -> dict[str, Any]:
    """Notification payload for one reminder window"""
    start_time = format_event_time(reminder.time) or "TBA"
    if window == WINDOW_24H:
        title = "Still planning to go? 📅"
        body = f'"{reminder.title}" starts tomorrow at {start_time} in {reminder.venue}.'
    else:
        title = "Starting in 1 hour! ⏰"
        body = f'Get ready! "{reminder.title}" is about to kick off at {reminder.venue}.'
    return {
        "eventName": reminder.title,
        "startTime": start_time,
        "venue": reminder.venue,
        "eventId": reminder.event_id,
        "type": window,
        "title": title,
        "body": body,
        "url": f"/events/{reminder.event_id}",
    }


def _lease_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class ReminderSweep:
    """Scans saved events and dispatches due reminders"""

    def __init__(
        self,
        store: EventStore,
        dispatcher: NotificationDispatcher,
        settings: ReminderSettings | None = None,
        *,
        log: logging.Logger | None = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.settings = settings or ReminderSettings()
        self.log = log or logger

    @classmethod
    def from_app(cls, app: Flask | None = None) -> "ReminderSweep":
        from campus_hub.extensions import get_dispatcher, get_event_store, get_event_timezone

        app = app or current_app
        return cls(
            get_event_store(app),
            get_dispatcher(app),
            ReminderSettings.from_config(app.config, get_event_timezone(app)),
            log=app.logger,
        )

    def due_windows(self, reminder: PendingReminder, now: datetime) -> list[str]:
        hours = reminder.hours_until_start(now, self.settings.timezone)
        windows = []
        if not reminder.reminder_24h_sent and self.settings.window_24h.contains(hours):
            windows.append(WINDOW_24H)
        if not reminder.reminder_1h_sent and self.settings.window_1h.contains(hours):
            windows.append(WINDOW_1H)
        return windows

    def _dispatch(self, reminder: PendingReminder, window: str) -> bool:
        try:
            self.dispatcher.trigger(
                REMINDER_WORKFLOW,
                Recipient.subscriber(reminder.user_id),
                build_reminder_payload(reminder, window),
            )
        except Exception as exc:
            record_reminder_error()
            self.log.warning(
                f"Reminder {window} for event {reminder.event_id} to user {reminder.user_id} failed: {exc}"
            )
            return False
        record_reminder_sent(window)
        return True

    def run(self, now: datetime | None = None, test_user_id: str | None = None) -> ReminderSweepSummary:
        """
        Run one sweep.

        With ``test_user_id`` only that user's saved events are touched and
        each of them gets a 1-hour reminder regardless of timing.
        """
        now = now or utcnow()
        summary = ReminderSweepSummary(test_mode=test_user_id is not None)
        holder = _lease_holder()

        if not self.store.acquire_lease(LEASE_NAME, holder, now=now, ttl_seconds=self.settings.lease_seconds):
            self.log.info("Reminder sweep skipped: another sweep holds the lease")
            summary.skipped = True
            return summary

        try:
            reminders = self.store.list_pending_reminders(user_id=test_user_id)
            summary.pending = len(reminders)
            updates: list[ReminderFlagUpdate] = []

            for reminder in reminders:
                windows = [WINDOW_1H] if test_user_id is not None else self.due_windows(reminder, now)
                sent_24h = reminder.reminder_24h_sent
                sent_1h = reminder.reminder_1h_sent
                staged = False
                for window in windows:
                    if not self._dispatch(reminder, window):
                        summary.errors += 1
                        continue
                    staged = True
                    if window == WINDOW_24H:
                        summary.sent_24h += 1
                        sent_24h = True
                    else:
                        summary.sent_1h += 1
                        sent_1h = True
                if staged:
                    updates.append(
                        ReminderFlagUpdate(
                            user_id=reminder.user_id,
                            event_id=reminder.event_id,
                            reminder_24h_sent=sent_24h,
                            reminder_1h_sent=sent_1h,
                        )
                    )

            if updates:
                try:
                    summary.processed = self.store.upsert_reminder_flags(updates)
                except Exception as exc:
                    summary.persist_failed = True
                    record_reminder_persist_failure()
                    self.log.error(f"Failed to persist {len(updates)} reminder flag updates: {exc}", exc_info=True)
        finally:
            self.store.release_lease(LEASE_NAME, holder)

        self.log.info(
            f"Reminder sweep complete: {summary.sent_24h} x 24h, {summary.sent_1h} x 1h, "
            f"{summary.errors} errors, {summary.processed}/{summary.pending} rows updated"
        )
        return summary
