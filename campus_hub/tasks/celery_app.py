"""
Celery configuration for the periodic sweeps.

Defaults to a SQLite transport under the instance folder so a development
machine can run the worker and beat scheduler without Redis.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping

from celery import Celery
from celery.schedules import crontab
from flask import Flask
from kombu import Queue

DEFAULT_QUEUE_NAME = "sweeps"
DEFAULT_SQLITE_FILENAME = "celery.sqlite"
SCHEDULER_EXTENSION_KEY = "campus_hub_scheduler"

REMINDER_TASK = "sweeps.reminders"
RETENTION_TASK = "sweeps.retention"
STORAGE_CLEANUP_TASK = "sweeps.storage_cleanup"


def _configure_quiet_loggers(app: Flask) -> None:
    """Keep SQLAlchemy and Celery worker-state chatter out of sweep logs."""
    if not app.config.get("SQLALCHEMY_ECHO", False):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("celery.worker.strategy").setLevel(logging.WARNING)


def _normalize_sqlite_path(app: Flask) -> Path:
    """Resolve CELERY_SQLITE_PATH against the instance folder and make sure its directory exists."""
    configured = app.config.get("CELERY_SQLITE_PATH")
    if configured:
        sqlite_path = Path(configured)
        if not sqlite_path.is_absolute():
            sqlite_path = Path(app.instance_path) / sqlite_path
    else:
        sqlite_path = Path(app.instance_path) / DEFAULT_SQLITE_FILENAME

    sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite_path


def _determine_connection_urls(app: Flask) -> tuple[str, str]:
    """Return (broker_url, result_backend); whichever is unset falls back to the SQLite file."""
    broker_url = app.config.get("CELERY_BROKER_URL")
    result_backend = app.config.get("CELERY_RESULT_BACKEND")

    if broker_url and result_backend:
        return broker_url, result_backend

    sqlite_file = _normalize_sqlite_path(app).as_posix()
    return (
        broker_url or f"sqla+sqlite:///{sqlite_file}",
        result_backend or f"db+sqlite:///{sqlite_file}",
    )


def build_beat_schedule(app: Flask) -> dict[str, dict[str, Any]]:
    """Reminder sweep every REMINDER_SWEEP_INTERVAL_MINUTES, retention once a day."""
    interval = app.config.get("REMINDER_SWEEP_INTERVAL_MINUTES", 15)
    return {
        "reminder-sweep": {
            "task": REMINDER_TASK,
            "schedule": timedelta(minutes=interval),
            "options": {"expires": interval * 60},
        },
        "retention-sweep": {
            "task": RETENTION_TASK,
            "schedule": crontab(
                hour=app.config.get("RETENTION_SWEEP_HOUR", 3),
                minute=0,
            ),
        },
    }


def create_celery_app(app: Flask) -> Celery:
    """
    Create and configure a Celery instance bound to the given Flask app.

    Point ``CELERY_BROKER_URL``/``CELERY_RESULT_BACKEND`` at Redis or Postgres
    in production.
    """
    broker_url, result_backend = _determine_connection_urls(app)
    celery_app = Celery(
        app.import_name,
        broker=broker_url,
        backend=result_backend,
        include=("campus_hub.tasks.sweeps",),
    )

    celery_app.conf.update(
        task_default_queue=DEFAULT_QUEUE_NAME,
        task_queues=[Queue(DEFAULT_QUEUE_NAME)],
        task_default_exchange=DEFAULT_QUEUE_NAME,
        task_default_routing_key=DEFAULT_QUEUE_NAME,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_track_started=True,
        broker_connection_retry_on_startup=True,
        timezone="UTC",
        enable_utc=True,
        beat_schedule=build_beat_schedule(app) if app.config.get("SCHEDULER_ENABLED", False) else {},
        worker_hijack_root_logger=False,
    )

    overrides: Mapping[str, Any] | str | None = app.config.get("CELERY_CONFIG")
    if isinstance(overrides, str):
        try:
            overrides = json.loads(overrides)
        except json.JSONDecodeError:
            app.logger.warning("Ignoring CELERY_CONFIG: not a JSON object", exc_info=True)
            overrides = None
    if overrides:
        celery_app.conf.update(overrides)

    app.logger.info(
        "Sweep scheduler configured",
        extra={
            "broker_url": broker_url,
            "beat_entries": sorted(celery_app.conf.beat_schedule),
        },
    )

    _configure_quiet_loggers(app)

    class FlaskContextTask(celery_app.Task):  # type: ignore[misc]
        """Sweeps read services from app.extensions, so every task needs the app context."""

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery_app.Task = FlaskContextTask  # type: ignore[assignment]
    celery_app.loader.import_default_modules()
    return celery_app


def get_celery_app(app: Flask) -> Celery:
    """Return (and cache) the Celery instance for ``app``."""
    state: dict[str, Any] = app.extensions.setdefault(SCHEDULER_EXTENSION_KEY, {})
    celery_app: Celery | None = state.get("celery_app")
    if celery_app is None:
        celery_app = create_celery_app(app)
        state["celery_app"] = celery_app
    return celery_app
