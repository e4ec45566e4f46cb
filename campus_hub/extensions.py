"""
Application-scoped collaborators.

The event store, blob storage, notification dispatcher, auth provider
client and change feed are built once from config and cached in
``app.extensions`` so routes, Celery tasks and CLI commands share them.
"""

from __future__ import annotations

import os
from typing import Any

from flask import Flask, current_app

from campus_hub.integrations.auth_provider import SupabaseAuthClient
from campus_hub.integrations.notifications import LoggingDispatcher, NotificationDispatcher, NovuDispatcher
from campus_hub.integrations.storage import BlobStorage, LocalStorage, SupabaseStorage
from campus_hub.repositories import EventStore, create_event_store
from campus_hub.services.change_feed import ChangeFeed
from campus_hub.utils.time import resolve_timezone

EXTENSION_KEY = "campus_hub"


def _build_storage(app: Flask) -> BlobStorage:
    backend = app.config.get("STORAGE_BACKEND", "local")
    bucket = app.config.get("EVENT_ASSET_BUCKET", "event-images")
    if backend == "supabase":
        url = app.config.get("SUPABASE_URL")
        key = app.config.get("SUPABASE_SERVICE_ROLE_KEY")
        if not url or not key:
            raise ValueError("STORAGE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        return SupabaseStorage(url, key, bucket)
    if backend == "local":
        root = app.config.get("LOCAL_STORAGE_DIR") or os.path.join(app.instance_path, "uploads")
        return LocalStorage(root, bucket, base_url=app.config.get("LOCAL_STORAGE_URL", "/uploads"))
    raise ValueError(f"Unknown STORAGE_BACKEND '{backend}'. Expected 'supabase' or 'local'.")


def _build_dispatcher(app: Flask) -> NotificationDispatcher:
    backend = app.config.get("NOTIFICATION_BACKEND", "log")
    if backend == "novu":
        api_key = app.config.get("NOVU_API_KEY")
        if not api_key:
            raise ValueError("NOTIFICATION_BACKEND=novu requires NOVU_API_KEY")
        return NovuDispatcher(
            api_key,
            base_url=app.config.get("NOVU_API_URL", "https://api.novu.co"),
            timeout=app.config.get("NOVU_TIMEOUT_SECONDS", 10.0),
        )
    if backend == "log":
        return LoggingDispatcher()
    raise ValueError(f"Unknown NOTIFICATION_BACKEND '{backend}'. Expected 'novu' or 'log'.")


def _build_auth_client(app: Flask) -> SupabaseAuthClient | None:
    if app.config.get("AUTH_PROVIDER", "local") != "supabase":
        return None
    url = app.config.get("SUPABASE_URL")
    key = app.config.get("SUPABASE_ANON_KEY") or app.config.get("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("AUTH_PROVIDER=supabase requires SUPABASE_URL and an API key")
    return SupabaseAuthClient(url, key)


def init_services(app: Flask) -> dict[str, Any]:
    """Build (or rebuild) the collaborators for ``app`` from its config."""
    state = {
        "store": create_event_store(app.config.get("EVENT_STORE_BACKEND", "sqlalchemy")),
        "storage": _build_storage(app),
        "dispatcher": _build_dispatcher(app),
        "auth_client": _build_auth_client(app),
        "change_feed": ChangeFeed(),
        "timezone": resolve_timezone(app.config.get("EVENT_TIMEZONE", "UTC")),
    }
    app.extensions[EXTENSION_KEY] = state
    app.logger.info(
        "Campus Hub services initialised",
        extra={
            "event_store_backend": app.config.get("EVENT_STORE_BACKEND"),
            "storage_backend": app.config.get("STORAGE_BACKEND"),
            "notification_backend": app.config.get("NOTIFICATION_BACKEND"),
            "auth_provider": app.config.get("AUTH_PROVIDER"),
        },
    )
    return state


def _state(app: Flask | None = None) -> dict[str, Any]:
    app = app or current_app
    state = app.extensions.get(EXTENSION_KEY)
    if state is None:
        state = init_services(app)
    return state


def get_event_store(app: Flask | None = None) -> EventStore:
    return _state(app)["store"]


def get_storage(app: Flask | None = None) -> BlobStorage:
    return _state(app)["storage"]


def get_dispatcher(app: Flask | None = None) -> NotificationDispatcher:
    return _state(app)["dispatcher"]


def get_auth_client(app: Flask | None = None) -> SupabaseAuthClient | None:
    return _state(app)["auth_client"]


def get_change_feed(app: Flask | None = None) -> ChangeFeed:
    return _state(app)["change_feed"]


def get_event_timezone(app: Flask | None = None):
    return _state(app)["timezone"]
