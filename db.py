"""
db.py
SQLite helpers + initialization (creates DB/tables, counters, indexes).
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

import config

logger = logging.getLogger(__name__)

DB_FILE: Path = config.DEFAULT_DB_FILE

MEMBERSHIP_SEQUENCE = "membership_number"


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


@contextmanager
def transaction():
    """
    BEGIN IMMEDIATE takes the write lock up front, so a count/counter read
    and the write that depends on it cannot interleave with another writer.
    Commits on success, rolls back on any exception.
    """
    conn = sqlite3.connect(DB_FILE, check_same_thread=False, timeout=10, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            full_name TEXT NOT NULL,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    # Separate from users; exactly one role per user
    execute(
        """
        CREATE TABLE IF NOT EXISTS user_roles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL UNIQUE,
            role TEXT NOT NULL CHECK(role IN ('admin','user')),
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS memberships (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            membership_number TEXT NOT NULL UNIQUE,
            member_name TEXT NOT NULL,
            email TEXT NOT NULL,
            phone TEXT NOT NULL,
            address TEXT NOT NULL,
            duration TEXT NOT NULL CHECK(duration IN ('6_months','1_year','2_years')),
            status TEXT NOT NULL CHECK(status IN ('active','cancelled','expired')),
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            created_by INTEGER,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            version INTEGER NOT NULL DEFAULT 1,
            CHECK(end_date >= start_date),
            FOREIGN KEY(created_by) REFERENCES users(id)
        )
        """
    )

    # Transaction history: one row per create/extend/renew/cancel/expire
    execute(
        """
        CREATE TABLE IF NOT EXISTS membership_events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            membership_id INTEGER NOT NULL,
            action TEXT NOT NULL,
            duration TEXT,
            old_end_date TEXT,
            new_end_date TEXT,
            actor_id INTEGER,
            created_at TEXT NOT NULL,
            FOREIGN KEY(membership_id) REFERENCES memberships(id)
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS sequences (
            name TEXT PRIMARY KEY,
            value INTEGER NOT NULL
        )
        """
    )

    execute("CREATE INDEX IF NOT EXISTS idx_memberships_status_end ON memberships(status, end_date)")
    execute("CREATE INDEX IF NOT EXISTS idx_events_membership ON membership_events(membership_id)")


def init_db(path: Path | str | None = None) -> None:
    """
    Initialize the database.
    - Point the module at `path` (or the configured file)
    - Create tables
    - Seed the membership-number counter from any existing rows
    """
    global DB_FILE
    DB_FILE = Path(path) if path is not None else config.get_settings().db_path
    _create_tables()
    execute(
        """
        INSERT OR IGNORE INTO sequences(name, value)
        VALUES(?, (SELECT COUNT(*) FROM memberships))
        """,
        (MEMBERSHIP_SEQUENCE,),
    )
    logger.debug("Database ready at %s", DB_FILE)
