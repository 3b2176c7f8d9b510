# auth/accounts.py
"""
Account persistence.

Accounts are never hard-deleted; deactivation sets ``deleted_at``.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Callable, Optional

from auth.models import (
    Account,
    AccountKind,
    from_db_time,
    normalize_email,
    to_db_time,
    utcnow,
)
from persistence.db import Database

_logger = logging.getLogger(__name__)


class DuplicateEmailError(Exception):
    """An account with this email already exists."""


class AccountStore:
    """Reads and writes rows of the ``accounts`` table."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def insert(self, account: Account) -> Account:
        """
        Persist a new account.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO accounts
                    (id, email, password_hash, first_name, last_name, avatar, kind,
                     email_verified, created_at, updated_at, last_login_at, deleted_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        account.id,
                        account.email,
                        account.password_hash,
                        account.first_name,
                        account.last_name,
                        account.avatar,
                        account.kind.value,
                        int(account.email_verified),
                        to_db_time(account.created_at),
                        to_db_time(account.updated_at),
                        to_db_time(account.last_login_at),
                        to_db_time(account.deleted_at),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateEmailError(account.email) from e
        return account

    def find_by_email(self, email: str) -> Optional[Account]:
        """Look up an account by email, including soft-deleted ones."""
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE email = ?",
                (normalize_email(email),),
            ).fetchone()
        return _row_to_account(row) if row else None

    def find_by_id(self, account_id: str) -> Optional[Account]:
        """Look up an account by ID, including soft-deleted ones."""
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE id = ?",
                (account_id,),
            ).fetchone()
        return _row_to_account(row) if row else None

    def find_active(self, account_id: str) -> Optional[Account]:
        account = self.find_by_id(account_id)
        if account is None or not account.is_active:
            return None
        return account

    def record_login(self, account_id: str) -> datetime:
        now = self.clock()
        with self.db.transaction() as conn:
            conn.execute(
                "UPDATE accounts SET last_login_at = ? WHERE id = ?",
                (to_db_time(now), account_id),
            )
        return now

    def update_password(self, account_id: str, password_hash: str) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE accounts SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, to_db_time(self.clock()), account_id),
            )
            return cursor.rowcount > 0

    def update_profile(
        self,
        account_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> Optional[Account]:
        """
        Update the given profile fields of an active account.

        Fields left as None are unchanged. Returns the updated account,
        or None if no active account matched.
        """
        changes = {}
        if first_name is not None:
            changes["first_name"] = first_name.strip()
        if last_name is not None:
            changes["last_name"] = last_name.strip()
        if avatar is not None:
            changes["avatar"] = avatar or None

        with self.db.transaction() as conn:
            if changes:
                assignments = ", ".join(f"{column} = ?" for column in changes)
                cursor = conn.execute(
                    f"UPDATE accounts SET {assignments}, updated_at = ? "
                    "WHERE id = ? AND deleted_at IS NULL",
                    (*changes.values(), to_db_time(self.clock()), account_id),
                )
                if cursor.rowcount == 0:
                    return None
            return self.find_active(account_id)

    def soft_delete(self, account_id: str) -> bool:
        """Set the soft-delete marker. Returns False if already deleted or missing."""
        now = to_db_time(self.clock())
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE accounts SET deleted_at = ?, updated_at = ? "
                "WHERE id = ? AND deleted_at IS NULL",
                (now, now, account_id),
            )
            return cursor.rowcount > 0


def _row_to_account(row) -> Account:
    """Convert a database row to an Account object."""
    return Account(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        avatar=row["avatar"],
        kind=AccountKind(row["kind"]),
        email_verified=bool(row["email_verified"]),
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
        last_login_at=from_db_time(row["last_login_at"]),
        deleted_at=from_db_time(row["deleted_at"]),
    )
