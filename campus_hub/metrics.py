"""Prometheus metrics helpers for the sweeps."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter

_reminders_sent = Counter(
    "campus_hub_reminders_sent_total",
    "Reminder notifications dispatched, by window.",
    ["window"],
)
_reminder_errors = Counter(
    "campus_hub_reminder_dispatch_errors_total",
    "Reminder dispatch failures.",
)
_reminder_persist_failures = Counter(
    "campus_hub_reminder_flag_persist_failures_total",
    "Reminder sweeps whose flag batch failed to persist.",
)
_retention_deleted = Counter(
    "campus_hub_retention_events_deleted_total",
    "Events removed by the retention sweep.",
)
_storage_deleted = Counter(
    "campus_hub_storage_objects_deleted_total",
    "Blob storage objects deleted, by job.",
    ["job"],
)
_storage_errors = Counter(
    "campus_hub_storage_errors_total",
    "Blob storage deletion failures, by job.",
    ["job"],
)


def record_reminder_sent(window: Literal["24h", "1h"]) -> None:
    _reminders_sent.labels(window=window).inc()


def record_reminder_error() -> None:
    _reminder_errors.inc()


def record_reminder_persist_failure() -> None:
    _reminder_persist_failures.inc()


def record_retention_deleted(count: int) -> None:
    if count:
        _retention_deleted.inc(count)


def record_storage_deleted(job: Literal["retention", "reconciler", "delete"], count: int) -> None:
    if count:
        _storage_deleted.labels(job=job).inc(count)


def record_storage_error(job: Literal["retention", "reconciler", "delete"]) -> None:
    _storage_errors.labels(job=job).inc()
