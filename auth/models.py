# auth/models.py
"""
Account, session, reset-ticket and token-claim models.
"""

from __future__ import annotations

import json
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """Serialize a timestamp so that string order equals time order."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class AccountKind(str, Enum):
    PERSONAL = "personal"
    PROFESSIONAL = "professional"


class TokenPurpose(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass
class Account:
    """
    Registered user account.

    Attributes:
        id: Unique account ID (UUID)
        email: Normalized email (unique, used for login)
        password_hash: Bcrypt-hashed password
        first_name: Given name
        last_name: Family name
        kind: personal or professional
        avatar: Optional avatar URL
        email_verified: Whether the email address was confirmed
        created_at: Account creation timestamp
        updated_at: Last update timestamp
        last_login_at: Last successful login
        deleted_at: Soft-delete marker (None while active)
    """
    id: str
    email: str
    password_hash: str
    first_name: str
    last_name: str
    kind: AccountKind = AccountKind.PERSONAL
    avatar: Optional[str] = None
    email_verified: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_login_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        kind: AccountKind = AccountKind.PERSONAL,
        now: Optional[datetime] = None,
    ) -> Account:
        """Create a new account with generated ID."""
        now = now or utcnow()
        return cls(
            id=str(uuid.uuid4()),
            email=normalize_email(email),
            password_hash=password_hash,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            kind=AccountKind(kind),
            created_at=now,
            updated_at=now,
        )

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    def to_dict(self) -> dict:
        """Convert to dictionary (excludes password_hash for safety)."""
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "avatar": self.avatar,
            "kind": self.kind.value,
            "emailVerified": self.email_verified,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "lastLoginAt": _iso(self.last_login_at),
        }


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass
class SessionRecord:
    """
    Persisted, revocable handle for an issued access token.

    Attributes:
        id: Unique session ID
        account_id: Owning account
        token: The access (or, in refresh_tokens, refresh) token this row backs
        expires_at: Session expiration timestamp
        device: Optional client metadata (ip_address, user_agent)
        created_at: Session creation timestamp
    """
    id: str
    account_id: str
    token: str
    expires_at: datetime
    device: Optional[dict] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        account_id: str,
        token: str,
        ttl: timedelta,
        device: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> SessionRecord:
        now = now or utcnow()
        return cls(
            id=str(uuid.uuid4()),
            account_id=account_id,
            token=token,
            expires_at=now + ttl,
            device=device or None,
            created_at=now,
        )

    def is_valid_at(self, now: datetime) -> bool:
        return now < self.expires_at

    @property
    def device_json(self) -> Optional[str]:
        return json.dumps(self.device) if self.device else None


@dataclass
class ResetTicket:
    """One-time artifact authorizing a single password change."""
    id: str
    account_id: str
    token: str
    expires_at: datetime
    used_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        account_id: str,
        ttl: timedelta,
        now: Optional[datetime] = None,
    ) -> ResetTicket:
        now = now or utcnow()
        return cls(
            id=str(uuid.uuid4()),
            account_id=account_id,
            token=secrets.token_hex(32),
            expires_at=now + ttl,
            created_at=now,
        )

    def is_usable_at(self, now: datetime) -> bool:
        return self.used_at is None and now < self.expires_at


@dataclass(frozen=True)
class TokenClaims:
    """
    Logical payload inside a signed token.

    Timestamps are integer seconds since the epoch, as in JWT.
    """
    account_id: str
    email: str
    kind: AccountKind
    purpose: TokenPurpose
    issued_at: int
    expires_at: int
    token_id: str

    @classmethod
    def new(
        cls,
        account: Account,
        purpose: TokenPurpose,
        ttl: timedelta,
        now: Optional[datetime] = None,
    ) -> TokenClaims:
        issued_at = int((now or utcnow()).timestamp())
        return cls(
            account_id=account.id,
            email=account.email,
            kind=account.kind,
            purpose=TokenPurpose(purpose),
            issued_at=issued_at,
            expires_at=issued_at + int(ttl.total_seconds()),
            token_id=uuid.uuid4().hex,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "sub": self.account_id,
            "email": self.email,
            "kind": self.kind.value,
            "purpose": self.purpose.value,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "jti": self.token_id,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TokenClaims:
        """Build claims from a decoded payload. Raises ValueError/KeyError/TypeError on bad input."""
        issued_at = payload["iat"]
        expires_at = payload["exp"]
        if not isinstance(issued_at, int) or not isinstance(expires_at, int):
            raise TypeError("iat and exp must be integers")
        for name in ("sub", "email", "jti"):
            if not isinstance(payload[name], str):
                raise TypeError(f"{name} must be a string")
        return cls(
            account_id=payload["sub"],
            email=payload["email"],
            kind=AccountKind(payload["kind"]),
            purpose=TokenPurpose(payload["purpose"]),
            issued_at=issued_at,
            expires_at=expires_at,
            token_id=payload["jti"],
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def to_dict(self) -> dict:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
        }


@dataclass(frozen=True)
class Identity:
    """Verified caller identity injected by the auth gate."""
    account_id: str
    email: str
    kind: AccountKind
    token: str
