# persistence/db.py
"""
SQLite database handle and schema management.

A single ``Database`` instance is created by the composition root and
passed to every store. It owns one connection shared across worker
threads; a re-entrant lock serializes access so that each transaction
sees a consistent view and nested ``transaction()`` blocks join the
outer one.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

_logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        avatar TEXT,
        kind TEXT NOT NULL DEFAULT 'personal',
        email_verified INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        last_login_at TEXT,
        deleted_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id TEXT PRIMARY KEY,
        account_id TEXT NOT NULL,
        token TEXT NOT NULL UNIQUE,
        expires_at TEXT NOT NULL,
        device_info TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (account_id) REFERENCES accounts(id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_sessions_account
    ON sessions(account_id)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_sessions_expires
    ON sessions(expires_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS password_resets (
        id TEXT PRIMARY KEY,
        account_id TEXT NOT NULL,
        token TEXT NOT NULL UNIQUE,
        expires_at TEXT NOT NULL,
        used_at TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (account_id) REFERENCES accounts(id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_password_resets_account
    ON password_resets(account_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_tokens (
        id TEXT PRIMARY KEY,
        account_id TEXT NOT NULL,
        token TEXT NOT NULL UNIQUE,
        expires_at TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (account_id) REFERENCES accounts(id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_refresh_tokens_account
    ON refresh_tokens(account_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        description TEXT,
        parent_id TEXT,
        icon TEXT,
        marketplaces TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        sort_order INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (parent_id) REFERENCES categories(id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_categories_parent
    ON categories(parent_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS assets (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        category_id TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT,
        brand TEXT,
        model TEXT,
        serial_number TEXT,
        condition TEXT,
        status TEXT NOT NULL DEFAULT 'active',
        purchase_price TEXT NOT NULL,
        purchase_currency TEXT NOT NULL DEFAULT 'EUR',
        purchase_date TEXT NOT NULL,
        tags TEXT,
        notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        deleted_at TEXT,
        FOREIGN KEY (owner_id) REFERENCES accounts(id),
        FOREIGN KEY (category_id) REFERENCES categories(id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_assets_owner
    ON assets(owner_id, deleted_at)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_assets_category
    ON assets(category_id)
    """,
)

_TABLES = ("assets", "categories", "refresh_tokens", "password_resets", "sessions", "accounts")


class DatabaseNotInitializedError(RuntimeError):
    """Raised when the database is used before ``init()`` or after ``dispose()``."""


class Database:
    """
    Relational store handle.

    Usage:
        db = Database("data/assetsync.db")
        db.init()
        with db.transaction() as conn:
            conn.execute("SELECT ...")
        db.dispose()
    """

    def __init__(self, path: Union[str, Path] = MEMORY_PATH):
        self.path = str(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def init(self) -> None:
        """
        Open the connection and create tables if they don't exist.

        Safe to call multiple times (idempotent).
        """
        with self._lock:
            if self._conn is None:
                if self.path != MEMORY_PATH:
                    Path(self.path).parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(
                    self.path,
                    timeout=30.0,
                    check_same_thread=False,
                )
                conn.execute("PRAGMA foreign_keys = ON")
                conn.row_factory = sqlite3.Row
                self._conn = conn

            with self.transaction() as conn:
                for statement in _SCHEMA:
                    conn.execute(statement)

        _logger.info(f"Database initialized at {self.path}")

    def dispose(self) -> None:
        """Close the connection. The handle can be re-opened with ``init()``."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                _logger.info(f"Database closed at {self.path}")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block of statements atomically.

        Commits when the outermost block exits normally, rolls back when
        it raises. Inner blocks share the outer transaction.
        """
        with self._lock:
            if self._conn is None:
                raise DatabaseNotInitializedError("Database is not initialized")
            conn = self._conn
            self._depth += 1
            try:
                yield conn
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    conn.rollback()
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    conn.commit()

    def reset(self) -> None:
        """Drop and recreate all tables (for testing)."""
        with self.transaction() as conn:
            for table in _TABLES:
                conn.execute(f"DROP TABLE IF EXISTS {table}")
        self.init()

    def table_names(self) -> list[str]:
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
        return [row["name"] for row in rows]
