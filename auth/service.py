# auth/service.py
"""
Account lifecycle service.

Handles:
- Registration and login
- Logout and token refresh
- Password reset request and completion
- Profile reads, updates and deactivation

Every operation returns ``Ok(value)`` or ``Err(AuthErrorKind)``; storage
failures and other unexpected errors propagate as exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from auth.accounts import AccountStore, DuplicateEmailError
from auth.errors import AuthErrorKind, Err, Ok, Result
from auth.models import Account, AccountKind, TokenPair, TokenPurpose, normalize_email
from auth.notifications import LoggingResetNotifier, ResetNotifier
from auth.password import PasswordHasher, is_password_strong
from auth.resets import RESET_TICKET_TTL, ResetTicketStore
from auth.sessions import SessionStore
from auth.tokens import TokenCodec

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSession:
    """An account together with the token pair just issued for it."""
    account: Account
    tokens: TokenPair


class AccountService:
    """
    Orchestrates the password hasher, token codec and stores.

    All collaborators are passed in by the composition root.
    """

    def __init__(
        self,
        accounts: AccountStore,
        sessions: SessionStore,
        resets: ResetTicketStore,
        codec: TokenCodec,
        hasher: PasswordHasher,
        notifier: Optional[ResetNotifier] = None,
        reset_ttl: timedelta = RESET_TICKET_TTL,
    ):
        self.accounts = accounts
        self.sessions = sessions
        self.resets = resets
        self.codec = codec
        self.hasher = hasher
        self.notifier = notifier or LoggingResetNotifier()
        self.reset_ttl = reset_ttl

    # -------------------------------------------------------------------------
    # Registration / login
    # -------------------------------------------------------------------------

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        kind: AccountKind = AccountKind.PERSONAL,
        device: Optional[dict] = None,
    ) -> Result[AuthSession, AuthErrorKind]:
        """
        Register a new account and open its first session.

        Returns:
            Ok(AuthSession) on success
            Err(CONFLICT) if the email is taken
            Err(WEAK_PASSWORD) if the password is too weak
        """
        email = normalize_email(email)

        is_strong, error_msg = is_password_strong(password)
        if not is_strong:
            return Err(AuthErrorKind.WEAK_PASSWORD, error_msg)

        if self.accounts.find_by_email(email) is not None:
            return Err(AuthErrorKind.CONFLICT)

        account = Account.new(
            email=email,
            password_hash=self.hasher.hash(password),
            first_name=first_name,
            last_name=last_name,
            kind=kind,
            now=self.accounts.clock(),
        )

        try:
            with self.accounts.db.transaction():
                self.accounts.insert(account)
                tokens = self._open_session(account, device)
        except DuplicateEmailError:
            return Err(AuthErrorKind.CONFLICT)

        _logger.info(f"Registered account {account.id}")
        return Ok(AuthSession(account=account, tokens=tokens))

    def login(
        self,
        email: str,
        password: str,
        device: Optional[dict] = None,
    ) -> Result[AuthSession, AuthErrorKind]:
        """
        Authenticate with email and password.

        Unknown, deactivated and wrong-password cases all yield the same
        INVALID_CREDENTIALS error.
        """
        account = self.accounts.find_by_email(email)

        if account is None or not account.is_active:
            self.hasher.burn(password)
            _logger.warning("Login failed: unknown or inactive account")
            return Err(AuthErrorKind.INVALID_CREDENTIALS)

        if not self.hasher.verify(password, account.password_hash):
            _logger.warning(f"Login failed: bad password for account {account.id}")
            return Err(AuthErrorKind.INVALID_CREDENTIALS)

        with self.accounts.db.transaction():
            tokens = self._open_session(account, device)
            account.last_login_at = self.accounts.record_login(account.id)

        _logger.info(f"Account {account.id} logged in")
        return Ok(AuthSession(account=account, tokens=tokens))

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def logout(self, access_token: Optional[str]) -> Ok:
        """Delete the session behind ``access_token``. Always succeeds."""
        if not access_token:
            return Ok(False)

        try:
            removed = self.sessions.delete_by_token(access_token)
        except Exception:
            _logger.exception("Logout session delete failed")
            return Ok(False)

        if removed:
            _logger.info("Session closed by logout")
        return Ok(removed)

    def refresh(
        self,
        refresh_token: str,
        device: Optional[dict] = None,
    ) -> Result[TokenPair, AuthErrorKind]:
        """
        Exchange a refresh token for a new token pair and session.

        The refresh token must still be on record: password reset and
        deactivation revoke it. Sessions opened earlier are left in place.
        """
        result = self.codec.verify(refresh_token)
        if isinstance(result, Err):
            _logger.info(f"Refresh rejected: {result.kind.value}")
            return Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

        claims = result.value
        if claims.purpose != TokenPurpose.REFRESH:
            _logger.info("Refresh rejected: wrong token purpose")
            return Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

        if self.sessions.find_active_refresh(refresh_token) is None:
            _logger.info(f"Refresh rejected: token revoked for account {claims.account_id}")
            return Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

        account = self.accounts.find_active(claims.account_id)
        if account is None:
            _logger.info(f"Refresh rejected: account {claims.account_id} inactive")
            return Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

        tokens = self._open_session(account, device)
        _logger.info(f"Refreshed tokens for account {account.id}")
        return Ok(tokens)

    # -------------------------------------------------------------------------
    # Password reset
    # -------------------------------------------------------------------------

    def request_password_reset(self, email: str) -> Ok:
        """
        Issue a reset ticket if the email belongs to an active account.

        The result is the same whether or not the account exists.
        """
        account = self.accounts.find_by_email(email)
        if account is None or not account.is_active:
            _logger.info("Password reset requested for unknown or inactive email")
            return Ok(None)

        ticket = self.resets.create(account.id, ttl=self.reset_ttl)
        self.notifier.send_reset(account, ticket)
        _logger.info(f"Password reset ticket issued for account {account.id}")
        return Ok(None)

    def reset_password(self, token: str, new_password: str) -> Result[None, AuthErrorKind]:
        """
        Consume a reset ticket, set the new password and close every session.

        Returns:
            Ok(None) on success
            Err(INVALID_OR_EXPIRED_TOKEN) if the ticket is unknown, expired or used
            Err(WEAK_PASSWORD) if the new password is too weak
        """
        ticket = self.resets.find_usable(token)
        if ticket is None:
            return Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

        is_strong, error_msg = is_password_strong(new_password)
        if not is_strong:
            return Err(AuthErrorKind.WEAK_PASSWORD, error_msg)

        password_hash = self.hasher.hash(new_password)

        with self.accounts.db.transaction():
            if not self.resets.consume(ticket.id):
                return Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)
            self.accounts.update_password(ticket.account_id, password_hash)
            self.sessions.delete_all_for_account(ticket.account_id)

        _logger.info(f"Password reset completed for account {ticket.account_id}")
        return Ok(None)

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    def get_account(self, account_id: str) -> Result[Account, AuthErrorKind]:
        account = self.accounts.find_active(account_id)
        if account is None:
            return Err(AuthErrorKind.ACCOUNT_INACTIVE)
        return Ok(account)

    def update_profile(
        self,
        account_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> Result[Account, AuthErrorKind]:
        account = self.accounts.update_profile(
            account_id,
            first_name=first_name,
            last_name=last_name,
            avatar=avatar,
        )
        if account is None:
            return Err(AuthErrorKind.ACCOUNT_INACTIVE)
        _logger.info(f"Updated profile for account {account_id}")
        return Ok(account)

    def deactivate(self, account_id: str) -> Result[None, AuthErrorKind]:
        """Soft-delete the account and revoke all of its sessions."""
        with self.accounts.db.transaction():
            if not self.accounts.soft_delete(account_id):
                return Err(AuthErrorKind.ACCOUNT_INACTIVE)
            self.sessions.delete_all_for_account(account_id)

        _logger.info(f"Deactivated account {account_id}")
        return Ok(None)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _open_session(self, account: Account, device: Optional[dict]) -> TokenPair:
        """Issue a token pair, persist a session for the access token and record the refresh token."""
        tokens = self.codec.issue_pair(account)
        with self.sessions.db.transaction():
            self.sessions.create(
                account.id,
                tokens.access_token,
                ttl=self.codec.access_ttl,
                device=device,
            )
            self.sessions.create_refresh(
                account.id,
                tokens.refresh_token,
                ttl=self.codec.refresh_ttl,
            )
        return tokens
