"""
SessionStore - Persist lesson sessions in ~/.kiraquest/sessions.db.

Stores one JSON snapshot per session plus a few indexed columns:
- Current stage and completion flag (for listings)
- A revision counter used as an optimistic concurrency guard
"""

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from kiraquest.schemas import LessonSession

from .errors import ConcurrentUpdateError

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = Path.home() / ".kiraquest"
DEFAULT_STORE_DB = DEFAULT_STORE_DIR / "sessions.db"


@dataclass
class StoredSession:
    """Raw stored snapshot; validate the payload with the engine before use."""
    session_id: str
    payload: dict[str, Any]
    revision: int
    created_at: datetime
    updated_at: datetime


class SessionStore:
    """
    Store lesson session snapshots in SQLite.

    Each method opens its own connection. Writes go through save() with the
    revision read at load time; a stale revision is rejected.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize session store.

        Args:
            db_path: Path to sessions.db (default: ~/.kiraquest/sessions.db)
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_STORE_DB
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS lesson_sessions (
                    session_id TEXT PRIMARY KEY,
                    topic TEXT,
                    personality_tone TEXT NOT NULL,
                    current_stage_index INTEGER NOT NULL DEFAULT 0,
                    total_stages INTEGER NOT NULL,
                    is_complete INTEGER NOT NULL DEFAULT 0,
                    payload TEXT NOT NULL,
                    revision INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_lesson_sessions_complete
                ON lesson_sessions(is_complete);
            """)
            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _columns(session: LessonSession) -> tuple:
        return (
            session.topic,
            session.personality_tone.value,
            session.current_stage_index,
            session.total_stages,
            int(session.is_complete),
            session.model_dump_json(by_alias=True),
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, session_id: str) -> Optional[StoredSession]:
        """Get a stored session, or None if the id is unknown."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT session_id, payload, revision, created_at, updated_at
                   FROM lesson_sessions WHERE session_id = ?""",
                (session_id,)
            )
            row = cursor.fetchone()
            if not row:
                return None

            return StoredSession(
                session_id=row["session_id"],
                payload=json.loads(row["payload"]),
                revision=row["revision"],
                created_at=datetime.fromisoformat(row["created_at"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
        finally:
            conn.close()

    def list_session_ids(self, include_complete: bool = True) -> list[str]:
        """Get IDs of stored sessions, oldest first."""
        conn = self._get_connection()
        try:
            query = "SELECT session_id FROM lesson_sessions"
            if not include_complete:
                query += " WHERE is_complete = 0"
            cursor = conn.execute(query + " ORDER BY created_at, session_id")
            return [row["session_id"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, session: LessonSession) -> int:
        """
        Store a new session.

        Returns:
            Initial revision (1)

        Raises:
            sqlite3.IntegrityError: If the session id already exists
        """
        conn = self._get_connection()
        try:
            now = datetime.now().isoformat()
            conn.execute(
                """INSERT INTO lesson_sessions
                   (topic, personality_tone, current_stage_index, total_stages, is_complete,
                    payload, session_id, revision, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?)""",
                self._columns(session) + (session.session_id, now, now)
            )
            conn.commit()
            logger.debug(f"Stored session {session.session_id}")
            return 1
        finally:
            conn.close()

    def save(self, session: LessonSession, expected_revision: int) -> int:
        """
        Save an updated session if nobody else saved it since it was loaded.

        Args:
            session: Updated session
            expected_revision: Revision returned when the session was loaded

        Returns:
            New revision

        Raises:
            ConcurrentUpdateError: If the stored revision differs (or the row is gone)
        """
        conn = self._get_connection()
        try:
            now = datetime.now().isoformat()
            cursor = conn.execute(
                """UPDATE lesson_sessions SET
                     topic = ?, personality_tone = ?, current_stage_index = ?,
                     total_stages = ?, is_complete = ?, payload = ?,
                     revision = revision + 1, updated_at = ?
                   WHERE session_id = ? AND revision = ?""",
                self._columns(session) + (now, session.session_id, expected_revision)
            )
            if cursor.rowcount == 0:
                conn.rollback()
                raise ConcurrentUpdateError(session.session_id, expected_revision)
            conn.commit()
            logger.debug(f"Saved session {session.session_id} at revision {expected_revision + 1}")
            return expected_revision + 1
        finally:
            conn.close()

    def delete(self, session_id: str) -> bool:
        """Delete a session. Returns False if it did not exist."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "DELETE FROM lesson_sessions WHERE session_id = ?",
                (session_id,)
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
