# campus_hub/services/assets.py
"""
Helpers for the blob objects an event owns (its image and document).
"""

from __future__ import annotations

import logging
from typing import Iterable

from campus_hub.errors import StorageError
from campus_hub.integrations.storage import BlobStorage, extract_storage_key, is_placeholder_url
from campus_hub.metrics import record_storage_deleted, record_storage_error
from campus_hub.repositories.records import EventRecord

logger = logging.getLogger(__name__)


def owned_asset_keys(event: EventRecord, bucket: str, placeholder_hosts: Iterable[str] = ()) -> list[str]:
    """Storage keys of the event's image and document, skipping placeholder images"""
    keys = []
    if event.image_url and not is_placeholder_url(event.image_url, placeholder_hosts):
        key = extract_storage_key(event.image_url, bucket)
        if key:
            keys.append(key)
    if event.document_url:
        key = extract_storage_key(event.document_url, bucket)
        if key and key not in keys:
            keys.append(key)
    return keys


def delete_event_assets(
    storage: BlobStorage,
    events: Iterable[EventRecord],
    *,
    placeholder_hosts: Iterable[str] = (),
    job: str = "delete",
    log: logging.Logger | None = None,
) -> tuple[int, int]:
    """
    Delete the blobs owned by ``events``, one storage call per event.

    Returns ``(objects_deleted, errors)``. A failed call is logged and
    counted; it never raises, so the caller can go on to delete the rows.
    """
    log = log or logger
    placeholder_hosts = tuple(placeholder_hosts)
    deleted = 0
    errors = 0
    for event in events:
        keys = owned_asset_keys(event, storage.bucket, placeholder_hosts)
        if not keys:
            continue
        try:
            storage.delete_objects(keys)
        except StorageError as exc:
            errors += 1
            record_storage_error(job)
            log.warning(f"Failed to delete assets for event {event.id}: {exc}")
            continue
        deleted += len(keys)
    record_storage_deleted(job, deleted)
    return deleted, errors
