"""
Local Store — SQLite-backed key/value slots holding JSON snapshots.
Used in local mode to persist jobs, employers and the session between runs.
"""

import json
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

from tools.log import get_logger

log = get_logger(__name__)

# Slot names
JOBS = "jobs"
EMPLOYERS = "employers"
SESSION = "loggedInEmployer"
FAVORITES = "favorites"
FEEDBACK = "feedback"
FEEDBACK_USER = "feedbackUser"


class LocalStore:
    """
    Durable key/value store with three core slots (jobs, employers, session)
    plus a few device-local extras (favorites, feedback).

    Reads never raise: a missing slot, an unreadable database or unparsable
    JSON all yield the caller's default. Writes never raise either; a failed
    write is logged and reported through the return value only.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a SQLite connection, creating the directory if needed."""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def _init_db(self) -> None:
        """Create the slots table if it doesn't exist."""
        try:
            conn = self._get_connection()
        except (sqlite3.Error, OSError) as e:
            log.warning("Local store unavailable at %s: %s", self.db_path, e)
            return
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()
        except sqlite3.Error as e:
            log.warning("Could not initialize local store %s: %s", self.db_path, e)
        finally:
            conn.close()

    def read(self, key: str, default: Any = None) -> Any:
        """
        Read and decode one slot.

        Args:
            key: Slot name.
            default: Returned when the slot is absent or unreadable.

        Returns:
            The decoded JSON value, or default.
        """
        try:
            conn = self._get_connection()
            try:
                row = conn.execute("SELECT value FROM slots WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            log.warning("Reading slot %r failed: %s", key, e)
            return default

        if row is None:
            return default
        try:
            return json.loads(row[0])
        except ValueError as e:
            log.warning("Slot %r holds unparsable data, ignoring it: %s", key, e)
            return default

    def read_list(self, key: str, default: list) -> list:
        """Like read(), but anything that is not a list yields default. An empty list is kept."""
        value = self.read(key)
        if isinstance(value, list):
            return value
        if value is not None:
            log.warning("Slot %r does not hold a list, ignoring it", key)
        return default

    def write(self, key: str, value: Any) -> bool:
        """
        Encode and store one slot.

        Returns:
            True on success, False if the write was dropped.
        """
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            log.warning("Slot %r is not serializable, not saved: %s", key, e)
            return False

        now = datetime.now(timezone.utc).isoformat()
        try:
            conn = self._get_connection()
            try:
                conn.execute(
                    "INSERT INTO slots (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                    (key, payload, now),
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            log.warning("Writing slot %r failed: %s", key, e)
            return False
        return True

    def remove(self, key: str) -> bool:
        """Delete one slot. Missing slots are not an error."""
        try:
            conn = self._get_connection()
            try:
                conn.execute("DELETE FROM slots WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            log.warning("Removing slot %r failed: %s", key, e)
            return False
        return True


    # --- Core snapshots ---
    def load_jobs(self, default: list[dict]) -> list:
        """Stored job records; the default dataset when the slot is absent or corrupted."""
        return self.read_list(JOBS, default)

    def load_employers(self, default: list[dict]) -> list:
        return self.read_list(EMPLOYERS, default)

    def load_session(self) -> Optional[dict]:
        """The logged-in employer record, or None (absent slot means no session)."""
        value = self.read(SESSION)
        return value if isinstance(value, dict) else None
