"""
Snapshot storage backend (SQLite).

The whole AppState is stored as one versioned JSON document in a key/value
table. Loading never fails: a missing, unreadable, or malformed snapshot
yields an empty board and empty history.
"""
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .schema import PERSIST_KEY, AppState

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "taskboard" / "taskboard.db"


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class SnapshotStore:
    """SQLite-backed store for board snapshots."""

    def __init__(self, db_path: Optional[str] = None, key: str = PERSIST_KEY):
        """Initialize store and create the table if needed."""
        if db_path is None:
            db_path = str(DEFAULT_DB_PATH)
        self.db_path = db_path
        self.key = key
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def save(self, state: AppState) -> bool:
        """Write the snapshot. Returns False (and logs) on database errors."""
        payload = json.dumps(state.to_snapshot())
        now = datetime.now(timezone.utc).isoformat()
        try:
            with _connect(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO snapshots (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """, (self.key, payload, now))
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.error(f"Error saving snapshot {self.key}: {e}")
            return False

    def load_raw(self) -> Optional[str]:
        """The stored JSON text, or None if there is none."""
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM snapshots WHERE key = ?", (self.key,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning(f"Error reading snapshot {self.key}: {e}")
            return None
        return row["value"] if row else None

    def load(self) -> AppState:
        """Load the stored state, substituting an empty state for anything unusable."""
        raw = self.load_raw()
        if raw is None:
            return AppState.empty()
        try:
            return AppState.from_snapshot(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding malformed snapshot {self.key}: {e}")
            return AppState.empty()

    def clear(self) -> None:
        with _connect(self.db_path) as conn:
            conn.execute("DELETE FROM snapshots WHERE key = ?", (self.key,))
            conn.commit()
