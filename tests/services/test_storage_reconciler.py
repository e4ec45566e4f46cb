# tests/services/test_storage_reconciler.py
"""
Unit tests for the storage reconciler
"""

import pytest

from campus_hub.errors import StorageError
from campus_hub.integrations.storage import LocalStorage
from campus_hub.repositories import InMemoryEventStore
from campus_hub.services.storage_reconciler import StorageReconciler, collect_references


class FlakyStorage(LocalStorage):
    """Fails the n-th delete call (1-based)"""

    def __init__(self, root, bucket, fail_on_call):
        super().__init__(root, bucket)
        self.fail_on_call = fail_on_call
        self.calls = []

    def delete_objects(self, keys):
        self.calls.append(list(keys))
        if len(self.calls) == self.fail_on_call:
            raise StorageError("batch rejected")
        super().delete_objects(keys)


@pytest.fixture
def bucket(tmp_path):
    return LocalStorage(tmp_path / "blobs", "event-images")


class TestCollectReferences:
    """Test reference matching"""

    def test_matches_by_key_and_basename(self, event_record):
        events = [
            event_record(image_url="https://xyz.supabase.co/storage/v1/object/public/event-images/posters/a.png"),
            event_record(document_url="https://mirror.example.com/files/b.pdf"),
        ]
        references = collect_references(events, "event-images")

        assert references.covers("posters/a.png")
        assert references.covers("archive/b.pdf")
        assert not references.covers("posters/c.png")

    def test_url_encoded_keys_are_decoded(self, bucket, event_record):
        references = collect_references([event_record(image_url=bucket.public_url("my poster.png"))], "event-images")
        assert references.covers("my poster.png")

    def test_empty_references_are_ignored(self, event_record):
        references = collect_references([event_record(image_url="", document_url=None)], "event-images")
        assert references.keys == frozenset()
        assert references.basenames == frozenset()


class TestStorageReconciler:
    """Test StorageReconciler.run"""

    def test_deletes_unreferenced_objects(self, bucket, make_event):
        store = InMemoryEventStore()
        for key in ("a.png", "b.png", "c.png"):
            bucket.upload(key, b"data")
        make_event(target_store=store, image_url=bucket.public_url("a.png"))

        summary = StorageReconciler(store, bucket).run()

        assert summary.deleted == 2
        assert summary.total == 3
        assert summary.errors == 0
        assert bucket.list_objects() == ["a.png"]

        again = StorageReconciler(store, bucket).run()
        assert again.deleted == 0
        assert again.total == 1

    def test_pending_events_keep_their_assets(self, bucket, make_event):
        store = InMemoryEventStore()
        bucket.upload("pending.png", b"data")
        make_event(approved=False, target_store=store, image_url=bucket.public_url("pending.png"))

        summary = StorageReconciler(store, bucket).run()

        assert summary.deleted == 0
        assert bucket.list_objects() == ["pending.png"]

    def test_empty_bucket(self, bucket):
        summary = StorageReconciler(InMemoryEventStore(), bucket).run()
        assert summary.to_dict() == {"deleted": 0, "total": 0, "errors": 0}

    def test_failed_batch_does_not_stop_the_rest(self, tmp_path):
        storage = FlakyStorage(tmp_path, "event-images", fail_on_call=2)
        for index in range(5):
            storage.upload(f"orphan-{index}.png", b"data")

        summary = StorageReconciler(InMemoryEventStore(), storage, batch_size=2).run()

        assert [len(batch) for batch in storage.calls] == [2, 2, 1]
        assert summary.deleted == 3
        assert summary.errors == 1
        assert summary.total == 5
        assert len(storage.list_objects()) == 2

    def test_batch_size_must_be_positive(self, bucket):
        with pytest.raises(ValueError):
            StorageReconciler(InMemoryEventStore(), bucket, batch_size=0)

    def test_from_app_uses_configured_storage(self, app, storage, make_event):
        storage.upload("orphan.png", b"data")
        storage.upload("kept.png", b"data")
        make_event(image_url=storage.public_url("kept.png"))

        summary = StorageReconciler.from_app(app).run()

        assert summary.deleted == 1
        assert storage.list_objects() == ["kept.png"]
