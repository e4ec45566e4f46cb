# campus_hub/services/retention_service.py
"""
Retention Sweep - removes events whose date is RETENTION_DAYS or more in
the past, together with their saves, in-app alerts and blob objects.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Iterable

from flask import Flask, current_app

from campus_hub.integrations.storage import BlobStorage
from campus_hub.metrics import record_retention_deleted
from campus_hub.repositories import EventStore
from campus_hub.services.assets import delete_event_assets
from campus_hub.utils.time import today_in

logger = logging.getLogger(__name__)


@dataclass
class RetentionSummary:
    cutoff: str
    deleted_events: int = 0
    deleted_objects: int = 0
    storage_errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RetentionSweep:
    def __init__(
        self,
        store: EventStore,
        storage: BlobStorage,
        *,
        retention_days: int = 7,
        tz: tzinfo = timezone.utc,
        placeholder_hosts: Iterable[str] = ("picsum.photos",),
        log: logging.Logger | None = None,
    ):
        self.store = store
        self.storage = storage
        self.retention_days = retention_days
        self.tz = tz
        self.placeholder_hosts = tuple(placeholder_hosts)
        self.log = log or logger

    @classmethod
    def from_app(cls, app: Flask | None = None) -> "RetentionSweep":
        from campus_hub.extensions import get_event_store, get_event_timezone, get_storage

        app = app or current_app
        return cls(
            get_event_store(app),
            get_storage(app),
            retention_days=app.config.get("RETENTION_DAYS", 7),
            tz=get_event_timezone(app),
            placeholder_hosts=app.config.get("PLACEHOLDER_IMAGE_HOSTS", ("picsum.photos",)),
            log=app.logger,
        )

    def cutoff_for(self, today: date) -> date:
        """Events dated on or before this day are expired"""
        return today - timedelta(days=self.retention_days)

    def run(self, today: date | None = None, *, now: datetime | None = None) -> RetentionSummary:
        today = today or today_in(self.tz, now)
        cutoff = self.cutoff_for(today)
        summary = RetentionSummary(cutoff=cutoff.isoformat())

        expired = self.store.list_events_dated_on_or_before(cutoff)
        if not expired:
            return summary

        summary.deleted_objects, summary.storage_errors = delete_event_assets(
            self.storage,
            expired,
            placeholder_hosts=self.placeholder_hosts,
            job="retention",
            log=self.log,
        )
        summary.deleted_events = self.store.delete_events([event.id for event in expired])
        record_retention_deleted(summary.deleted_events)

        self.log.info(
            f"Retention sweep removed {summary.deleted_events} events dated on or before {summary.cutoff} "
            f"({summary.deleted_objects} objects deleted, {summary.storage_errors} storage errors)"
        )
        return summary
