# auth/resets.py
"""
Password-reset ticket persistence.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from auth.models import ResetTicket, from_db_time, to_db_time, utcnow
from persistence.db import Database

_logger = logging.getLogger(__name__)

RESET_TICKET_TTL = timedelta(hours=1)


class ResetTicketStore:
    """Creates, looks up and consumes one-time reset tickets."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def create(self, account_id: str, ttl: timedelta = RESET_TICKET_TTL) -> ResetTicket:
        ticket = ResetTicket.new(account_id=account_id, ttl=ttl, now=self.clock())

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO password_resets (id, account_id, token, expires_at, used_at, created_at)
                VALUES (?, ?, ?, ?, NULL, ?)
                """,
                (
                    ticket.id,
                    ticket.account_id,
                    ticket.token,
                    to_db_time(ticket.expires_at),
                    to_db_time(ticket.created_at),
                ),
            )

        return ticket

    def find_usable(self, token: str) -> Optional[ResetTicket]:
        """Return the ticket if it exists, has not expired and was never used."""
        if not token:
            return None

        with self.db.transaction() as conn:
            row = conn.execute(
                """
                SELECT * FROM password_resets
                WHERE token = ? AND expires_at > ? AND used_at IS NULL
                """,
                (token, to_db_time(self.clock())),
            ).fetchone()

        return _row_to_ticket(row) if row else None

    def consume(self, ticket_id: str) -> bool:
        """
        Mark a ticket used.

        The update is conditioned on ``used_at IS NULL`` so that of two
        concurrent consumers exactly one sees True, and on expiry so that a
        ticket lapsing after ``find_usable`` is still refused.
        """
        now = to_db_time(self.clock())
        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE password_resets SET used_at = ?
                WHERE id = ? AND used_at IS NULL AND expires_at > ?
                """,
                (now, ticket_id, now),
            )
            return cursor.rowcount == 1

    def purge_expired(self) -> int:
        """Remove tickets past their expiry, used or not."""
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM password_resets WHERE expires_at <= ?",
                (to_db_time(self.clock()),),
            )
            count = cursor.rowcount

        if count > 0:
            _logger.info(f"Cleaned up {count} expired reset tickets")
        return count


def _row_to_ticket(row) -> ResetTicket:
    return ResetTicket(
        id=row["id"],
        account_id=row["account_id"],
        token=row["token"],
        expires_at=from_db_time(row["expires_at"]),
        used_at=from_db_time(row["used_at"]),
        created_at=from_db_time(row["created_at"]),
    )
