"""Session persistence behind a dirty-tracking gate.

The store is a plain key-value blob store holding the serializable subset of
the session (``PERSISTED_FIELDS``). A save is skipped whenever nothing changed
since the last successful save. A successful save stamps ``last_saved_at`` with
the saved snapshot's ``last_modified_at`` (not the wall clock), so an edit that
lands while a save is in flight is never considered saved.

Persistence failures are logged and leave the session unsaved in memory.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError as SchemaValidationError

from app.core.config import get_settings
from app.core.schemas_session import PERSISTED_FIELDS, Session
from app.core.session_state import is_dirty, mark_saved

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, blob: str) -> None: ...


class InMemoryBlobStore:
    def __init__(self):
        self.blobs: dict[str, str] = {}
        self.writes = 0

    def get(self, key: str) -> str | None:
        return self.blobs.get(key)

    def put(self, key: str, blob: str) -> None:
        self.writes += 1
        self.blobs[key] = blob


class FileBlobStore:
    """One JSON file per key, replaced atomically on write."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def put(self, key: str, blob: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(blob)
            os.replace(tmp_path, self._path(key))
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise


def serialize_session(session: Session) -> str:
    return session.model_dump_json(include=PERSISTED_FIELDS)


class SessionPersistence:
    def __init__(self, store: BlobStore | None = None, key: str | None = None):
        settings = get_settings()
        self.store = store if store is not None else FileBlobStore(settings.STORAGE_DIR)
        self.key = key or settings.STORAGE_KEY

    def save(self, session: Session) -> Session:
        """Write the session if dirty; returns the snapshot with ``last_saved_at`` updated."""
        if not is_dirty(session):
            logger.debug(f"Session {session.session_id} unchanged since last save; skipping write")
            return session

        try:
            self.store.put(self.key, serialize_session(session))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save session {session.session_id}: {e}")
            return session

        return mark_saved(session)

    def load(self) -> Session | None:
        """Restore the persisted session; ``None`` when absent or unreadable."""
        try:
            blob = self.store.get(self.key)
        except OSError as e:
            logger.error(f"Failed to read persisted session: {e}")
            return None
        if blob is None:
            return None

        try:
            data = json.loads(blob)
            if not isinstance(data, dict) or not data.get("session_id"):
                raise ValueError("persisted blob has no session_id")
            # Treat the persisted state as saved at its last activity
            data["last_modified_at"] = data.get("timestamp")
            data["last_saved_at"] = data.get("timestamp")
            return Session.model_validate(data)
        except (ValueError, SchemaValidationError) as e:
            logger.error(f"Failed to load persisted session: {e}")
            return None
