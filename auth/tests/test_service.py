# auth/tests/test_service.py
"""
Tests for AccountService: the account lifecycle without HTTP.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from auth.accounts import AccountStore
from auth.errors import AuthErrorKind, Err, Ok
from auth.models import AccountKind, TokenPurpose
from auth.notifications import RecordingResetNotifier
from auth.password import PasswordHasher
from auth.resets import ResetTicketStore
from auth.service import AccountService
from auth.sessions import SessionStore
from auth.tokens import TokenCodec

SECRET = "service-test-secret-0123456789abcdef"
NOW = datetime(2026, 5, 4, 8, 30, 0, tzinfo=timezone.utc)
PASSWORD = "Tr0ub4dor&3"


@pytest.fixture
def clock():
    return [NOW]


@pytest.fixture
def notifier():
    return RecordingResetNotifier()


@pytest.fixture
def service(database, clock, notifier):
    now = lambda: clock[0]  # noqa: E731
    return AccountService(
        accounts=AccountStore(database, clock=now),
        sessions=SessionStore(database, clock=now),
        resets=ResetTicketStore(database, clock=now),
        codec=TokenCodec(SECRET, clock=now),
        hasher=PasswordHasher(rounds=4),
        notifier=notifier,
    )


def register(service, email="erin@example.com", password=PASSWORD, **kwargs):
    return service.register(
        email=email,
        password=password,
        first_name="Erin",
        last_name="Gilbert",
        **kwargs,
    )


class TestRegister:

    def test_register_creates_account_and_session(self, service):
        result = register(service, kind=AccountKind.PROFESSIONAL, device={"user_agent": "ua"})

        assert isinstance(result, Ok)
        session = result.value
        assert session.account.kind == AccountKind.PROFESSIONAL
        assert session.account.password_hash != PASSWORD

        stored = service.sessions.find_active(session.tokens.access_token)
        assert stored.account_id == session.account.id
        assert stored.device == {"user_agent": "ua"}
        assert stored.expires_at == NOW + timedelta(minutes=15)

    def test_refresh_token_has_no_session(self, service):
        tokens = register(service).value.tokens
        assert service.sessions.find_active(tokens.refresh_token) is None

    def test_duplicate_email(self, service):
        register(service)
        result = register(service, email="ERIN@example.com")

        assert isinstance(result, Err)
        assert result.kind == AuthErrorKind.CONFLICT

    def test_weak_password(self, service):
        result = register(service, password="weakpass")

        assert result.kind == AuthErrorKind.WEAK_PASSWORD
        assert "uppercase" in result.message
        assert service.accounts.find_by_email("erin@example.com") is None

    def test_failed_session_rolls_back_account(self, service):
        with patch.object(service.sessions, "create", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                register(service)

        assert service.accounts.find_by_email("erin@example.com") is None


class TestLogin:

    def test_register_then_login(self, service, clock):
        register(service)
        clock[0] = NOW + timedelta(minutes=1)

        result = service.login("erin@example.com", PASSWORD)

        assert isinstance(result, Ok)
        assert result.value.account.last_login_at == NOW + timedelta(minutes=1)
        assert service.sessions.find_active(result.value.tokens.access_token) is not None

    def test_wrong_password_and_unknown_email_same_error(self, service):
        register(service)

        wrong = service.login("erin@example.com", "Wr0ng&Pass")
        unknown = service.login("nobody@example.com", "Wr0ng&Pass")

        assert wrong == unknown == Err(AuthErrorKind.INVALID_CREDENTIALS)

    def test_unknown_email_burns_hash_time(self, service):
        with patch.object(service.hasher, "burn") as burn:
            service.login("nobody@example.com", "whatever")
        burn.assert_called_once_with("whatever")

    def test_deactivated_account_cannot_login(self, service):
        account = register(service).value.account
        service.deactivate(account.id)

        assert service.login("erin@example.com", PASSWORD).kind == AuthErrorKind.INVALID_CREDENTIALS


class TestLogoutAndRefresh:

    def test_logout_removes_session(self, service):
        tokens = register(service).value.tokens

        assert service.logout(tokens.access_token) == Ok(True)
        assert service.sessions.find_active(tokens.access_token) is None
        assert service.logout(tokens.access_token) == Ok(False)

    def test_logout_never_fails(self, service):
        assert service.logout(None) == Ok(False)
        assert service.logout("garbage") == Ok(False)
        with patch.object(service.sessions, "delete_by_token", side_effect=RuntimeError("boom")):
            assert service.logout("anything") == Ok(False)

    def test_refresh_issues_new_session(self, service):
        tokens = register(service).value.tokens

        result = service.refresh(tokens.refresh_token)

        assert isinstance(result, Ok)
        assert result.value.access_token != tokens.access_token
        assert service.sessions.find_active(result.value.access_token) is not None
        assert service.sessions.find_active(tokens.access_token) is not None

    def test_refresh_rejects_access_token(self, service):
        tokens = register(service).value.tokens
        assert service.refresh(tokens.access_token) == Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

    def test_refresh_rejects_expired_token(self, service, clock):
        tokens = register(service).value.tokens
        clock[0] = NOW + timedelta(days=8)

        assert service.refresh(tokens.refresh_token) == Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

    def test_refresh_rejects_deactivated_account(self, service):
        session = register(service).value
        service.deactivate(session.account.id)

        assert service.refresh(session.tokens.refresh_token) == Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

    def test_refresh_token_recorded_on_issue(self, service):
        tokens = register(service).value.tokens

        record = service.sessions.find_active_refresh(tokens.refresh_token)
        assert record is not None
        assert record.expires_at == NOW + timedelta(days=7)

    def test_refresh_rejects_unrecorded_token(self, service):
        account = register(service).value.account
        unrecorded, _ = service.codec.issue(account, TokenPurpose.REFRESH)

        assert service.refresh(unrecorded) == Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

    def test_refresh_token_from_before_reset_is_revoked(self, service, notifier):
        session = register(service).value
        service.request_password_reset("erin@example.com")
        service.reset_password(notifier.last_token_for("erin@example.com"), "N3w&Password")

        assert service.refresh(session.tokens.refresh_token) == Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)
        assert service.sessions.list_active_for_account(session.account.id) == []

    def test_refresh_token_reusable_until_revoked(self, service):
        tokens = register(service).value.tokens

        assert isinstance(service.refresh(tokens.refresh_token), Ok)
        assert isinstance(service.refresh(tokens.refresh_token), Ok)


class TestPasswordReset:

    def test_request_for_unknown_email_is_silent(self, service, notifier):
        assert service.request_password_reset("nobody@example.com") == Ok(None)
        assert notifier.sent == []

    def test_request_for_known_email_notifies(self, service, notifier):
        register(service)

        assert service.request_password_reset("Erin@Example.com") == Ok(None)
        account, ticket = notifier.sent[0]
        assert account.email == "erin@example.com"
        assert ticket.expires_at == NOW + timedelta(hours=1)

    def test_reset_invalidates_all_sessions(self, service, notifier):
        first = register(service).value.tokens
        second = service.login("erin@example.com", PASSWORD).value.tokens
        service.request_password_reset("erin@example.com")

        result = service.reset_password(notifier.last_token_for("erin@example.com"), "N3w&Password")

        assert result == Ok(None)
        assert service.sessions.find_active(first.access_token) is None
        assert service.sessions.find_active(second.access_token) is None
        assert isinstance(service.login("erin@example.com", "N3w&Password"), Ok)
        assert service.login("erin@example.com", PASSWORD).kind == AuthErrorKind.INVALID_CREDENTIALS

    def test_ticket_usable_once(self, service, notifier):
        register(service)
        service.request_password_reset("erin@example.com")
        token = notifier.last_token_for("erin@example.com")

        assert service.reset_password(token, "N3w&Password") == Ok(None)
        assert service.reset_password(token, "Other&Pass9") == Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

    def test_lost_consume_race_changes_nothing(self, service, notifier):
        register(service)
        service.request_password_reset("erin@example.com")
        token = notifier.last_token_for("erin@example.com")

        with patch.object(service.resets, "consume", return_value=False):
            assert service.reset_password(token, "N3w&Password").kind == AuthErrorKind.INVALID_OR_EXPIRED_TOKEN

        assert isinstance(service.login("erin@example.com", PASSWORD), Ok)

    def test_expired_ticket_rejected(self, service, notifier, clock):
        register(service)
        service.request_password_reset("erin@example.com")
        clock[0] = NOW + timedelta(hours=2)

        result = service.reset_password(notifier.last_token_for("erin@example.com"), "N3w&Password")
        assert result == Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN)

    def test_weak_new_password_keeps_ticket(self, service, notifier):
        register(service)
        service.request_password_reset("erin@example.com")
        token = notifier.last_token_for("erin@example.com")

        assert service.reset_password(token, "short").kind == AuthErrorKind.WEAK_PASSWORD
        assert service.resets.find_usable(token) is not None


class TestProfile:

    def test_update_profile(self, service):
        account = register(service).value.account

        result = service.update_profile(account.id, first_name="Abby")

        assert result.value.first_name == "Abby"
        assert result.value.last_name == "Gilbert"

    def test_deactivate_twice(self, service):
        account = register(service).value.account

        assert service.deactivate(account.id) == Ok(None)
        assert service.deactivate(account.id) == Err(AuthErrorKind.ACCOUNT_INACTIVE)
        assert service.get_account(account.id) == Err(AuthErrorKind.ACCOUNT_INACTIVE)

    def test_token_claims_carry_account(self, service):
        session = register(service).value
        claims = service.codec.verify(session.tokens.access_token).value

        assert claims.account_id == session.account.id
        assert claims.email == "erin@example.com"
        assert claims.purpose == TokenPurpose.ACCESS
