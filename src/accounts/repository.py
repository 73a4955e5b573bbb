"""User and session persistence.

Shares the SQLite database with ``TaskRepository`` (``OOLLERT_DB_PATH``).
"""

from __future__ import annotations

import json
import logging
import secrets
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from src.tasks.repository import default_db_path

from .models import User
from .passwords import hash_password

logger = logging.getLogger(__name__)

DEFAULT_SESSION_MAX_AGE = 14 * 24 * 60 * 60


class DuplicateUserError(Exception):
    """Username or email already registered."""


class _SQLiteStore:
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else default_db_path()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize(self) -> None:
        raise NotImplementedError

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()


class UserRepository(_SQLiteStore):
    def _initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=row["created_at"],
        )

    def exists(self, username: str, email: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM users WHERE username = ? OR email = ?", (username, email)
            ).fetchone()
        return row is not None

    def create(self, username: str, email: str, password: str) -> User:
        """Register a user, hashing ``password``.

        Raises:
            DuplicateUserError: username or email is taken.
            ValueError: empty username, email or password.
        """
        username = (username or "").strip()
        email = (email or "").strip().lower()
        if not username or not email:
            raise ValueError("Username and email are required")
        password_hash = hash_password(password)
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO users (username, email, password_hash, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (username, email, password_hash, self._now()),
                )
                conn.commit()
                row = conn.execute(
                    "SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)
                ).fetchone()
        except sqlite3.IntegrityError as exc:
            raise DuplicateUserError("Username or email already taken") from exc
        logger.info("Registered user %s", username)
        return self._row_to_user(row)

    def find_by_username(self, username: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE username = ?", ((username or "").strip(),)
            ).fetchone()
        return self._row_to_user(row) if row else None

    def find_by_id(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None


class SessionStore(_SQLiteStore):
    """Server-side sessions keyed by an opaque cookie token."""

    def __init__(self, db_path: Optional[Path] = None, max_age_seconds: int = DEFAULT_SESSION_MAX_AGE):
        self.max_age = timedelta(seconds=max_age_seconds)
        super().__init__(db_path)

    def _initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    sid TEXT PRIMARY KEY,
                    data_json TEXT NOT NULL DEFAULT '{}',
                    expires_at TEXT NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_expires ON sessions(expires_at)")
            conn.commit()

    def _expiry(self, now: datetime) -> str:
        return (now + self.max_age).astimezone(timezone.utc).isoformat()

    def create(self, data: Dict[str, Any], now: datetime) -> str:
        sid = secrets.token_urlsafe(32)
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO sessions (sid, data_json, expires_at) VALUES (?, ?, ?)",
                (sid, json.dumps(data, ensure_ascii=False), self._expiry(now)),
            )
            conn.commit()
        return sid

    def load(self, sid: str, now: datetime) -> Optional[Dict[str, Any]]:
        """Session data for ``sid``, or None when unknown or expired."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data_json, expires_at FROM sessions WHERE sid = ?", (sid,)
            ).fetchone()
            if row is None:
                return None
            if datetime.fromisoformat(row["expires_at"]) <= now:
                conn.execute("DELETE FROM sessions WHERE sid = ?", (sid,))
                conn.commit()
                return None
        return json.loads(row["data_json"])

    def save(self, sid: str, data: Dict[str, Any], now: datetime) -> None:
        """Persist ``data`` and slide the expiry forward."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO sessions (sid, data_json, expires_at) VALUES (?, ?, ?)
                ON CONFLICT(sid) DO UPDATE SET
                    data_json = excluded.data_json,
                    expires_at = excluded.expires_at
                """,
                (sid, json.dumps(data, ensure_ascii=False), self._expiry(now)),
            )
            conn.commit()

    def delete(self, sid: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM sessions WHERE sid = ?", (sid,))
            conn.commit()

    def purge_expired(self, now: datetime) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE expires_at <= ?",
                (now.astimezone(timezone.utc).isoformat(),),
            )
            conn.commit()
            removed = cursor.rowcount
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed
