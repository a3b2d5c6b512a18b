"""
Database utilities for SQLite operations.

Provides connection management, schema initialization, the local user/profile
store and the user persistence log written by the user sync job.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import orjson

from utils.schemas import StudentUser, UserLogEntry

logger = logging.getLogger(__name__)


def get_conn(path: str) -> sqlite3.Connection:
    """
    Get SQLite database connection with dict-friendly row factory.

    Args:
        path: Database file path, or ":memory:"

    Returns:
        SQLite connection with row_factory set to sqlite3.Row

    Raises:
        sqlite3.Error: If connection fails
    """
    if path != ":memory:":
        # Ensure database directory exists
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """
    Initialize database schema by creating required tables if they don't exist.

    Creates:
    - users: local user store with custom profile fields
    - user_log: one row per processed user

    Raises:
        sqlite3.Error: If schema creation fails
    """
    with conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                external_id TEXT NOT NULL UNIQUE,
                username TEXT NOT NULL,
                email TEXT NOT NULL,
                firstname TEXT NOT NULL DEFAULT '',
                lastname TEXT NOT NULL DEFAULT '',
                profile TEXT NOT NULL DEFAULT '{}',
                updated_at TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS user_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                afm TEXT NOT NULL DEFAULT '',
                am TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL
            )
        """)

    logger.info("DB schema ready")


def upsert_user(conn: sqlite3.Connection, user: StudentUser) -> int:
    """
    Create or update a user keyed by external id.

    Args:
        conn: Open connection with schema initialized
        user: Validated user object

    Returns:
        Local user id
    """
    now = datetime.now(timezone.utc).isoformat()
    profile = orjson.dumps(user.profile_fields()).decode("utf-8")

    with conn:
        conn.execute(
            """
            INSERT INTO users (external_id, username, email, firstname, lastname, profile, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(external_id) DO UPDATE SET
                username = excluded.username,
                email = excluded.email,
                firstname = excluded.firstname,
                lastname = excluded.lastname,
                profile = excluded.profile,
                updated_at = excluded.updated_at
            """,
            (user.am, user.username, user.email, user.firstname, user.lastname, profile, now),
        )
        row = conn.execute("SELECT id FROM users WHERE external_id = ?", (user.am,)).fetchone()

    return int(row["id"])


def get_profile_field(conn: sqlite3.Connection, user_id: int, shortname: str) -> str:
    """
    Look up a custom profile field of a local user.

    Returns:
        The field value as a string, or "" when the user or field is absent
    """
    row = conn.execute("SELECT profile FROM users WHERE id = ?", (user_id,)).fetchone()
    if row is None:
        return ""

    value = orjson.loads(row["profile"]).get(shortname)
    return "" if value is None else str(value)


def log_user_update(conn: sqlite3.Connection, entry: UserLogEntry) -> int:
    """
    Append a row to the user persistence log.

    Returns:
        Id of the new log row
    """
    with conn:
        cursor = conn.execute(
            "INSERT INTO user_log (user_id, afm, am, created_at) VALUES (?, ?, ?, ?)",
            (entry.user_id, entry.afm, entry.am, entry.created_at.isoformat()),
        )

    return int(cursor.lastrowid)

