"""Tests for the persistence gate."""

import json
from datetime import datetime, timedelta, timezone

from app.core.session_state import is_dirty, record_answer
from app.core.session_store import (
    FileBlobStore,
    InMemoryBlobStore,
    SessionPersistence,
    serialize_session,
)

from tests.fixtures_sessions import make_session

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FailingStore(InMemoryBlobStore):
    def put(self, key: str, blob: str) -> None:
        raise OSError("disk full")


class TestSessionPersistence:
    def test_saving_twice_writes_once(self):
        store = InMemoryBlobStore()
        persistence = SessionPersistence(store, key="active")

        saved = persistence.save(make_session({"q1": "Feedback gets lost"}))
        saved_again = persistence.save(saved)

        assert store.writes == 1
        assert saved_again is saved
        assert is_dirty(saved) is False

    def test_every_mutation_makes_session_dirty(self):
        persistence = SessionPersistence(InMemoryBlobStore(), key="active")
        saved = persistence.save(make_session())

        # Same wall clock as the save; still strictly newer
        edited = record_answer(saved, "q1", "x", now=saved.last_modified_at)
        assert edited.last_modified_at > saved.last_saved_at
        assert is_dirty(edited) is True

    def test_edit_during_save_stays_dirty(self):
        store = InMemoryBlobStore()
        persistence = SessionPersistence(store, key="active")

        snapshot = make_session({"q1": "first"})
        # An edit lands after the snapshot was taken but before the save completes
        edited = record_answer(snapshot, "q1", "second", now=NOW + timedelta(seconds=1))
        saved_snapshot = persistence.save(snapshot)

        current = edited.model_copy(update={"last_saved_at": saved_snapshot.last_saved_at})
        assert is_dirty(current) is True

        persistence.save(current)
        assert store.writes == 2

    def test_failed_save_leaves_session_unsaved(self):
        persistence = SessionPersistence(FailingStore(), key="active")
        session = make_session({"q1": "x"})

        result = persistence.save(session)

        assert result.last_saved_at is None
        assert is_dirty(result) is True

    def test_serialized_blob_excludes_dirty_tracking(self):
        data = json.loads(serialize_session(make_session({"q1": "x"})))
        assert data["session_id"] == "sess-1"
        assert data["raw_answers"]["q1"]["value"] == "x"
        assert "last_modified_at" not in data
        assert "last_saved_at" not in data

    def test_load_round_trip_is_clean(self):
        store = InMemoryBlobStore()
        persistence = SessionPersistence(store, key="active")
        persistence.save(make_session({"q1": "Feedback gets lost"}, output_language="es"))

        loaded = persistence.load()

        assert loaded.session_id == "sess-1"
        assert loaded.raw_answers["q1"].value == "Feedback gets lost"
        assert loaded.output_language == "es"
        assert is_dirty(loaded) is False

    def test_load_missing_or_corrupt(self):
        store = InMemoryBlobStore()
        persistence = SessionPersistence(store, key="active")
        assert persistence.load() is None

        store.blobs["active"] = "{not json"
        assert persistence.load() is None

        store.blobs["active"] = json.dumps({"raw_answers": {}})
        assert persistence.load() is None


class TestFileBlobStore:
    def test_put_and_get(self, tmp_path):
        store = FileBlobStore(tmp_path / "store")
        assert store.get("active") is None

        store.put("active", '{"a": 1}')
        store.put("active", '{"a": 2}')

        assert store.get("active") == '{"a": 2}'
        assert [p.name for p in (tmp_path / "store").iterdir()] == ["active.json"]

    def test_persistence_on_disk(self, tmp_path):
        persistence = SessionPersistence(FileBlobStore(tmp_path), key="pcw_active_session_v1")
        persistence.save(make_session({"q3": "Product managers"}))

        reloaded = SessionPersistence(FileBlobStore(tmp_path), key="pcw_active_session_v1").load()
        assert reloaded.raw_answers["q3"].value == "Product managers"
