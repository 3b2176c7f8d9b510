# auth/sessions.py
"""
Session store.

Every issued access token is backed by a row in ``sessions``; the auth
gate only admits tokens whose row exists and has not expired. Issued
refresh tokens are recorded in ``refresh_tokens`` so that password reset
and deactivation revoke them too. Reads filter on expiry, and
``purge_expired`` removes stale rows for the sweeper.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from auth.models import SessionRecord, from_db_time, to_db_time, utcnow
from persistence.db import Database

_logger = logging.getLogger(__name__)


class SessionStore:
    """Persists access-token sessions. Several sessions per account are allowed."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def create(
        self,
        account_id: str,
        token: str,
        ttl: timedelta,
        device: Optional[dict] = None,
    ) -> SessionRecord:
        """
        Create a session for an issued access token.

        Args:
            account_id: Owning account
            token: Access token to back
            ttl: Session lifetime
            device: Optional client metadata (ip_address, user_agent)
        """
        record = SessionRecord.new(
            account_id=account_id,
            token=token,
            ttl=ttl,
            device=device,
            now=self.clock(),
        )

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO sessions (id, account_id, token, expires_at, device_info, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.account_id,
                    record.token,
                    to_db_time(record.expires_at),
                    record.device_json,
                    to_db_time(record.created_at),
                ),
            )

        _logger.debug(f"Created session {record.id} for account {account_id}")
        return record

    def find_active(self, token: str) -> Optional[SessionRecord]:
        """Return the session for ``token`` if it exists and has not expired."""
        if not token:
            return None

        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM sessions WHERE token = ? AND expires_at > ?",
                (token, to_db_time(self.clock())),
            ).fetchone()

        return _row_to_session(row) if row else None

    def list_active_for_account(self, account_id: str) -> List[SessionRecord]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM sessions
                WHERE account_id = ? AND expires_at > ?
                ORDER BY created_at DESC
                """,
                (account_id, to_db_time(self.clock())),
            ).fetchall()
        return [_row_to_session(row) for row in rows]

    def delete_by_token(self, token: str) -> bool:
        """Delete the session backing ``token``. Returns True if a row was removed."""
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
            return cursor.rowcount > 0

    # -------------------------------------------------------------------------
    # Refresh tokens
    # -------------------------------------------------------------------------

    def create_refresh(self, account_id: str, token: str, ttl: timedelta) -> SessionRecord:
        """Record an issued refresh token so that it can be revoked later."""
        record = SessionRecord.new(
            account_id=account_id,
            token=token,
            ttl=ttl,
            now=self.clock(),
        )

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO refresh_tokens (id, account_id, token, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.account_id,
                    record.token,
                    to_db_time(record.expires_at),
                    to_db_time(record.created_at),
                ),
            )
        return record

    def find_active_refresh(self, token: str) -> Optional[SessionRecord]:
        """Return the record for a refresh token that is unexpired and not revoked."""
        if not token:
            return None

        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM refresh_tokens WHERE token = ? AND expires_at > ?",
                (token, to_db_time(self.clock())),
            ).fetchone()

        if row is None:
            return None
        return SessionRecord(
            id=row["id"],
            account_id=row["account_id"],
            token=row["token"],
            expires_at=from_db_time(row["expires_at"]),
            created_at=from_db_time(row["created_at"]),
        )

    # -------------------------------------------------------------------------
    # Bulk invalidation
    # -------------------------------------------------------------------------

    def delete_all_for_account(self, account_id: str) -> int:
        """
        Revoke every session and refresh token of an account.

        Returns the number of sessions removed.
        """
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE account_id = ?",
                (account_id,),
            )
            count = cursor.rowcount
            conn.execute(
                "DELETE FROM refresh_tokens WHERE account_id = ?",
                (account_id,),
            )

        if count:
            _logger.info(f"Invalidated {count} sessions for account {account_id}")
        return count

    def purge_expired(self) -> int:
        """Remove expired sessions and refresh tokens. Returns the number removed."""
        now = to_db_time(self.clock())
        with self.db.transaction() as conn:
            count = conn.execute(
                "DELETE FROM sessions WHERE expires_at <= ?", (now,)
            ).rowcount
            count += conn.execute(
                "DELETE FROM refresh_tokens WHERE expires_at <= ?", (now,)
            ).rowcount

        if count > 0:
            _logger.info(f"Cleaned up {count} expired sessions")
        return count


def _row_to_session(row) -> SessionRecord:
    device = json.loads(row["device_info"]) if row["device_info"] else None
    return SessionRecord(
        id=row["id"],
        account_id=row["account_id"],
        token=row["token"],
        expires_at=from_db_time(row["expires_at"]),
        device=device,
        created_at=from_db_time(row["created_at"]),
    )
