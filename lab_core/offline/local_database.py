# =============================================================================
# lab_core/offline/local_database.py
# Local SQLite key/value storage for snapshots and the login session
# =============================================================================
"""
LocalStore - SQLite-backed durable key/value storage.

Two fixed keys live here:
- ``isaacLabData``: the serialized SystemData snapshot (LocalCache)
- ``currentUser``:  the serialized signed-in User (SessionStore)

Writes overwrite the previous value wholesale (last writer wins).
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
import logging

from lab_core.errors import ParseFailure
from lab_core.models import DEFAULT_ADMIN_EMAIL, SystemData, User, default_system_data

logger = logging.getLogger(__name__)


class LocalStore:
    """
    Durable key/value table in a local SQLite file.

    Connections are thread-local; every write commits immediately.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Args:
            db_path: Path to the SQLite file (``":memory:"`` for tests)
        """
        self.db_path = db_path
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> LocalStore:
        """Create the table if needed."""
        if not self._initialized:
            with self.transaction() as conn:
                conn.execute(self.SCHEMA)
            self._initialized = True
            logger.info(f"Local store initialized at: {self.db_path}")
        return self

    def get(self, key: str) -> Optional[str]:
        self.initialize()
        row = self._get_connection().execute(
            "SELECT value FROM kv_store WHERE key = ?", [key]
        ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        self.initialize()
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                """,
                [key, value, datetime.now().isoformat()],
            )

    def delete(self, key: str) -> None:
        self.initialize()
        with self.transaction() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", [key])

    def close(self) -> None:
        """Close database connection."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None


class LocalCache:
    """
    Last known SystemData snapshot.

    Used as a write-through backup after every remote refresh and as the
    only source of truth in local mode.
    """

    STORAGE_KEY = "isaacLabData"

    def __init__(self, store: LocalStore, key: str = STORAGE_KEY, admin_email: str = DEFAULT_ADMIN_EMAIL):
        self.store = store
        self.key = key
        self.admin_email = admin_email

    def exists(self) -> bool:
        return self.store.get(self.key) is not None

    def read(self) -> SystemData:
        """
        Return the persisted snapshot, or the Default Dataset when nothing is
        stored or the stored text does not decode.
        """
        raw = self.store.get(self.key)
        if raw is None:
            return default_system_data(self.admin_email)

        try:
            return SystemData.from_json(raw)
        except ParseFailure as e:
            logger.warning(f"Error loading cached snapshot '{self.key}': {e}")
            return default_system_data(self.admin_email)

    def write(self, data: SystemData) -> None:
        self.store.set(self.key, data.to_json())
        logger.debug(
            f"Snapshot saved: {len(data.components)} components, "
            f"{len(data.requests)} requests"
        )


class SessionStore:
    """Persists the signed-in user so a reload can resume the session."""

    STORAGE_KEY = "currentUser"

    def __init__(self, store: LocalStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key

    def load(self) -> Optional[User]:
        raw = self.store.get(self.key)
        if raw is None:
            return None

        try:
            return User.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Error loading saved user: {e}")
            self.clear()
            return None

    def save(self, user: User) -> None:
        self.store.set(self.key, json.dumps(user.to_dict(), sort_keys=True))

    def clear(self) -> None:
        self.store.delete(self.key)
