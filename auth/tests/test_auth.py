# auth/tests/test_auth.py
"""
Tests for authentication primitives.

Tests:
- Account / session / ticket / claim models
- Password hashing and strength rules
- Token signing and verification
- Result and error types
"""

from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import AuthError, AuthErrorKind, Err, Ok, TokenErrorKind, error_body
from auth.models import (
    Account,
    AccountKind,
    ResetTicket,
    SessionRecord,
    TokenClaims,
    TokenPurpose,
    from_db_time,
    to_db_time,
)
from auth.password import PasswordHasher, is_password_strong
from auth.tokens import TokenCodec, sign_token, verify_token

SECRET = "unit-test-secret-0123456789abcdef0123"
NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_account(**overrides) -> Account:
    fields = dict(
        email="alice@example.com",
        password_hash="hash",
        first_name="Alice",
        last_name="Liddell",
        now=NOW,
    )
    fields.update(overrides)
    return Account.new(**fields)


def b64(data: dict) -> str:
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


# =============================================================================
# Model Tests
# =============================================================================


class TestAccountModel:
    """Tests for Account model."""

    def test_new_generates_id(self):
        account = make_account()
        assert len(account.id) == 36  # UUID format
        assert account.created_at == account.updated_at == NOW

    def test_new_normalizes_email(self):
        account = make_account(email="  ALICE@Example.COM  ")
        assert account.email == "alice@example.com"

    def test_default_kind_is_personal(self):
        assert make_account().kind == AccountKind.PERSONAL
        assert make_account(kind="professional").kind == AccountKind.PROFESSIONAL

    def test_to_dict_excludes_password(self):
        d = make_account(password_hash="secret_hash").to_dict()

        assert "password_hash" not in d
        assert "secret_hash" not in d.values()
        assert d["firstName"] == "Alice"
        assert d["lastLoginAt"] is None

    def test_soft_delete_marks_inactive(self):
        account = make_account()
        assert account.is_active is True
        account.deleted_at = NOW
        assert account.is_active is False


class TestSessionAndTicketModels:

    def test_session_expiry(self):
        session = SessionRecord.new("acct", "tok", ttl=timedelta(minutes=15), now=NOW)

        assert session.expires_at == NOW + timedelta(minutes=15)
        assert session.is_valid_at(NOW + timedelta(minutes=14)) is True
        assert session.is_valid_at(NOW + timedelta(minutes=15)) is False

    def test_session_device_json(self):
        assert SessionRecord.new("a", "t", timedelta(1), now=NOW).device_json is None
        session = SessionRecord.new("a", "t", timedelta(1), device={"user_agent": "ua"}, now=NOW)
        assert json.loads(session.device_json) == {"user_agent": "ua"}

    def test_reset_ticket_token_is_random_hex(self):
        first = ResetTicket.new("acct", ttl=timedelta(hours=1), now=NOW)
        second = ResetTicket.new("acct", ttl=timedelta(hours=1), now=NOW)

        assert len(first.token) == 64
        int(first.token, 16)
        assert first.token != second.token

    def test_reset_ticket_usable_until_used_or_expired(self):
        ticket = ResetTicket.new("acct", ttl=timedelta(hours=1), now=NOW)

        assert ticket.is_usable_at(NOW) is True
        assert ticket.is_usable_at(NOW + timedelta(hours=2)) is False
        ticket.used_at = NOW
        assert ticket.is_usable_at(NOW) is False

    def test_db_time_round_trip_preserves_order(self):
        early = NOW
        late = NOW + timedelta(microseconds=1)

        assert to_db_time(early) < to_db_time(late)
        assert from_db_time(to_db_time(late)) == late
        assert to_db_time(None) is None


class TestTokenClaims:

    def test_claims_lifetime(self):
        claims = TokenClaims.new(make_account(), TokenPurpose.ACCESS, timedelta(minutes=15), now=NOW)

        assert claims.expires_at - claims.issued_at == 900
        assert claims.issued_at == int(NOW.timestamp())

    def test_payload_uses_jwt_claim_names(self):
        account = make_account()
        payload = TokenClaims.new(account, TokenPurpose.REFRESH, timedelta(days=7), now=NOW).to_payload()

        assert payload["sub"] == account.id
        assert payload["purpose"] == "refresh"
        assert payload["kind"] == "personal"
        assert set(payload) == {"sub", "email", "kind", "purpose", "iat", "exp", "jti"}

    def test_from_payload_rejects_missing_fields(self):
        with pytest.raises(KeyError):
            TokenClaims.from_payload({"sub": "x"})

    def test_from_payload_rejects_unknown_purpose(self):
        payload = TokenClaims.new(make_account(), TokenPurpose.ACCESS, timedelta(1), now=NOW).to_payload()
        payload["purpose"] = "admin"
        with pytest.raises(ValueError):
            TokenClaims.from_payload(payload)


# =============================================================================
# Password Tests
# =============================================================================


class TestPasswordHasher:
    """Tests for bcrypt hashing."""

    @pytest.fixture
    def hasher(self):
        return PasswordHasher(rounds=4)

    def test_hash_and_verify(self, hasher):
        password_hash = hasher.hash("Correct$Horse1")

        assert password_hash.startswith("$2")
        assert password_hash != "Correct$Horse1"
        assert hasher.verify("Correct$Horse1", password_hash) is True
        assert hasher.verify("Wrong$Horse1", password_hash) is False

    def test_hashes_are_salted(self, hasher):
        assert hasher.hash("Correct$Horse1") != hasher.hash("Correct$Horse1")

    def test_cost_is_embedded(self, hasher):
        assert hasher.hash("Correct$Horse1").split("$")[2] == "04"

    def test_default_cost_is_twelve(self):
        assert PasswordHasher().rounds == 12

    def test_rounds_below_minimum_rejected(self):
        with pytest.raises(ValueError):
            PasswordHasher(rounds=3)

    def test_empty_password_rejected(self, hasher):
        with pytest.raises(ValueError):
            hasher.hash("")

    def test_overlong_password_rejected(self, hasher):
        with pytest.raises(ValueError):
            hasher.hash("A1$" + "a" * 70)

    def test_verify_against_garbage_hash_is_false(self, hasher):
        assert hasher.verify("Correct$Horse1", "not-a-bcrypt-hash") is False
        assert hasher.verify("", "whatever") is False

    def test_burn_does_not_raise(self, hasher):
        hasher.burn("anything")
        hasher.burn("")


class TestPasswordStrength:

    @pytest.mark.parametrize("password", ["Passw0rd!", "Aa1!aaaa", "Ünïcode1!"])
    def test_strong_passwords(self, password):
        assert is_password_strong(password) == (True, "")

    @pytest.mark.parametrize(
        "password,fragment",
        [
            ("", "empty"),
            ("Aa1!", "at least 8"),
            ("password1!", "uppercase"),
            ("PASSWORD1!", "lowercase"),
            ("Password!!", "digit"),
            ("Password11", "special"),
            ("Aa1!" + "a" * 70, "72 bytes"),
        ],
    )
    def test_weak_passwords(self, password, fragment):
        ok, message = is_password_strong(password)
        assert ok is False
        assert fragment in message


# =============================================================================
# Token Tests
# =============================================================================


class TestTokens:
    """Tests for signing and verification."""

    def _claims(self, purpose=TokenPurpose.ACCESS, ttl=timedelta(minutes=15)):
        return TokenClaims.new(make_account(), purpose, ttl, now=NOW)

    def test_verify_returns_signed_claims(self):
        claims = self._claims()
        result = verify_token(sign_token(claims, SECRET), SECRET, now=NOW)

        assert isinstance(result, Ok)
        assert result.value == claims

    def test_different_secret_fails(self):
        token = sign_token(self._claims(), SECRET)
        result = verify_token(token, "another-secret-0123456789abcdef0", now=NOW)

        assert isinstance(result, Err)
        assert result.kind == TokenErrorKind.INVALID_SIGNATURE

    def test_expired_token_fails(self):
        token = sign_token(self._claims(), SECRET)
        result = verify_token(token, SECRET, now=NOW + timedelta(minutes=16))

        assert result.kind == TokenErrorKind.EXPIRED

    def test_expired_even_with_valid_signature_after_issue(self):
        token = sign_token(self._claims(ttl=timedelta(seconds=1)), SECRET)
        assert isinstance(verify_token(token, SECRET, now=NOW), Ok)
        assert verify_token(token, SECRET, now=NOW + timedelta(seconds=2)).kind == TokenErrorKind.EXPIRED

    @pytest.mark.parametrize("token", ["", "garbage", "a.b", "a.b.c", "....."])
    def test_malformed_tokens(self, token):
        result = verify_token(token, SECRET, now=NOW)

        assert isinstance(result, Err)
        assert result.kind == TokenErrorKind.MALFORMED

    def test_alg_none_rejected(self):
        payload = self._claims().to_payload()
        token = f"{b64({'alg': 'none', 'typ': 'JWT'})}.{b64(payload)}."

        assert verify_token(token, SECRET, now=NOW).kind == TokenErrorKind.INVALID_SIGNATURE

    def test_other_hmac_algorithm_rejected(self):
        token = jwt.encode(self._claims().to_payload(), SECRET, algorithm="HS512")

        assert verify_token(token, SECRET, now=NOW).kind == TokenErrorKind.INVALID_SIGNATURE

    def test_signed_payload_with_bad_shape_is_malformed(self):
        token = jwt.encode({"sub": "x", "iat": 1, "exp": "soon"}, SECRET, algorithm="HS256")

        assert verify_token(token, SECRET, now=NOW).kind == TokenErrorKind.MALFORMED

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            sign_token(self._claims(), "")
        with pytest.raises(ValueError):
            TokenCodec("")


class TestTokenCodec:

    @pytest.fixture
    def clock(self):
        current = [NOW]
        return current

    @pytest.fixture
    def codec(self, clock):
        return TokenCodec(SECRET, clock=lambda: clock[0])

    def test_pair_has_distinct_purposes(self, codec):
        pair = codec.issue_pair(make_account())

        access = codec.verify(pair.access_token).value
        refresh = codec.verify(pair.refresh_token).value
        assert access.purpose == TokenPurpose.ACCESS
        assert refresh.purpose == TokenPurpose.REFRESH
        assert access.expires_at - access.issued_at == 15 * 60
        assert refresh.expires_at - refresh.issued_at == 7 * 24 * 60 * 60

    def test_tokens_issued_in_same_second_differ(self, codec):
        account = make_account()
        first, _ = codec.issue(account, TokenPurpose.ACCESS)
        second, _ = codec.issue(account, TokenPurpose.ACCESS)

        assert first != second

    def test_access_expires_before_refresh(self, codec, clock):
        pair = codec.issue_pair(make_account())
        clock[0] = NOW + timedelta(minutes=16)

        assert codec.verify(pair.access_token).kind == TokenErrorKind.EXPIRED
        assert isinstance(codec.verify(pair.refresh_token), Ok)


# =============================================================================
# Error Type Tests
# =============================================================================


class TestErrors:

    def test_status_codes(self):
        assert AuthErrorKind.CONFLICT.status_code == 409
        assert AuthErrorKind.INVALID_CREDENTIALS.status_code == 401
        assert AuthErrorKind.ACCOUNT_INACTIVE.status_code == 403
        assert AuthErrorKind.INVALID_OR_EXPIRED_TOKEN.status_code == 400
        assert AuthErrorKind.RATE_LIMITED.status_code == 429
        assert AuthErrorKind.INTERNAL.status_code == 500

    def test_every_kind_has_status_and_message(self):
        for kind in AuthErrorKind:
            assert kind.status_code >= 400
            assert kind.default_message

    def test_error_body_shape(self):
        assert error_body(AuthErrorKind.FORBIDDEN) == {
            "success": False,
            "error": "Forbidden",
            "message": "Access denied",
        }

    def test_auth_error_from_err_overrides_status(self):
        error = AuthError.from_err(Err(AuthErrorKind.INVALID_OR_EXPIRED_TOKEN), status_code=401)

        assert error.status_code == 401
        assert error.message == "Invalid or expired token"

    def test_ok_and_err_flags(self):
        assert Ok(1).is_ok is True
        assert Err(AuthErrorKind.CONFLICT).is_ok is False
        assert Err(AuthErrorKind.WEAK_PASSWORD, "too short").detail == "too short"

    def test_from_err_keeps_explicit_message(self):
        error = AuthError.from_err(Err(AuthErrorKind.NOT_FOUND, "Asset not found"))

        assert error.status_code == 404
        assert error.message == "Asset not found"
        assert AuthError.from_err(Err(AuthErrorKind.NOT_FOUND)).message == "Resource not found"
