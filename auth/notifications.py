# auth/notifications.py
"""
Out-of-band delivery of password-reset tickets.

Delivery (email) is owned by an external service. The default notifier
only records that a ticket was issued, without the token itself.
"""

from __future__ import annotations

import logging
from typing import List, Protocol, Tuple

from auth.models import Account, ResetTicket

_logger = logging.getLogger(__name__)


class ResetNotifier(Protocol):
    def send_reset(self, account: Account, ticket: ResetTicket) -> None:
        ...


class LoggingResetNotifier:
    """Logs ticket issuance. Stand-in until an email service is wired up."""

    def send_reset(self, account: Account, ticket: ResetTicket) -> None:
        _logger.info(
            f"Password reset ticket {ticket.id} issued for account {account.id}, "
            f"expires {ticket.expires_at.isoformat()}"
        )


class RecordingResetNotifier:
    """Keeps delivered tickets in memory (for tests and local development)."""

    def __init__(self):
        self.sent: List[Tuple[Account, ResetTicket]] = []

    def send_reset(self, account: Account, ticket: ResetTicket) -> None:
        self.sent.append((account, ticket))

    def last_token_for(self, email: str) -> str:
        for account, ticket in reversed(self.sent):
            if account.email == email:
                return ticket.token
        raise LookupError(f"No reset ticket sent to {email}")
