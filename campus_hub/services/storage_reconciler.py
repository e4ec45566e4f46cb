# campus_hub/services/storage_reconciler.py
"""
Storage Reconciler - deletes objects in the event asset bucket that no
event references any more.

References are matched both by full storage key and by file name, so an
object is only removed when nothing could plausibly point at it.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import PurePosixPath
from typing import Any, Iterable

from flask import Flask, current_app

from campus_hub.errors import StorageError
from campus_hub.integrations.storage import BlobStorage, extract_storage_key, reference_basename
from campus_hub.metrics import record_storage_deleted, record_storage_error
from campus_hub.repositories import EventStore
from campus_hub.repositories.records import EventRecord

logger = logging.getLogger(__name__)


@dataclass
class ReconcileSummary:
    deleted: int = 0
    total: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReferenceSet:
    keys: frozenset[str]
    basenames: frozenset[str]

    def covers(self, object_key: str) -> bool:
        return object_key in self.keys or PurePosixPath(object_key).name in self.basenames


def collect_references(events: Iterable[EventRecord], bucket: str) -> ReferenceSet:
    keys = set()
    basenames = set()
    for event in events:
        for url in (event.image_url, event.document_url):
            key = extract_storage_key(url, bucket)
            if key:
                keys.add(key)
            name = reference_basename(url)
            if name:
                basenames.add(name)
    return ReferenceSet(frozenset(keys), frozenset(basenames))


class StorageReconciler:
    def __init__(
        self,
        store: EventStore,
        storage: BlobStorage,
        *,
        batch_size: int = 100,
        log: logging.Logger | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.storage = storage
        self.batch_size = batch_size
        self.log = log or logger

    @classmethod
    def from_app(cls, app: Flask | None = None) -> "StorageReconciler":
        from campus_hub.extensions import get_event_store, get_storage

        app = app or current_app
        return cls(
            get_event_store(app),
            get_storage(app),
            batch_size=app.config.get("STORAGE_DELETE_BATCH_SIZE", 100),
            log=app.logger,
        )

    def find_orphans(self) -> tuple[list[str], int]:
        """Return ``(orphan_keys, objects_in_bucket)``"""
        references = collect_references(self.store.list_events(), self.storage.bucket)
        present = self.storage.list_objects()
        orphans = [key for key in present if not references.covers(key)]
        return orphans, len(present)

    def run(self) -> ReconcileSummary:
        orphans, total = self.find_orphans()
        summary = ReconcileSummary(total=total)

        for start in range(0, len(orphans), self.batch_size):
            batch = orphans[start : start + self.batch_size]
            try:
                self.storage.delete_objects(batch)
            except StorageError as exc:
                summary.errors += 1
                record_storage_error("reconciler")
                self.log.error(f"Failed to delete orphan batch starting at {start}: {exc}")
                continue
            summary.deleted += len(batch)

        record_storage_deleted("reconciler", summary.deleted)
        self.log.info(
            f"Storage cleanup deleted {summary.deleted} of {summary.total} objects ({summary.errors} failed batches)"
        )
        return summary
