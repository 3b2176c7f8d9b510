# auth/errors.py
"""
Error taxonomy and result types shared by the auth and inventory packages.

Component operations return ``Ok(value)`` or ``Err(kind)`` for expected,
recoverable outcomes. Only the HTTP boundary turns an ``Err`` into a
response; FastAPI dependencies that must abort a request raise
``AuthError`` instead, which the application renders the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")
K = TypeVar("K")


class AuthErrorKind(str, Enum):
    """Stable, client-visible error kinds."""

    CONFLICT = "Conflict"
    INVALID_CREDENTIALS = "InvalidCredentials"
    AUTHENTICATION_REQUIRED = "AuthenticationRequired"
    INVALID_TOKEN_TYPE = "InvalidTokenType"
    ACCOUNT_INACTIVE = "AccountInactive"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    INVALID_OR_EXPIRED_TOKEN = "InvalidOrExpiredToken"
    WEAK_PASSWORD = "WeakPassword"
    VALIDATION_FAILED = "ValidationFailed"
    RATE_LIMITED = "RateLimited"
    INTERNAL = "Internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def default_message(self) -> str:
        return _MESSAGES[self]


_STATUS_CODES = {
    AuthErrorKind.CONFLICT: 409,
    AuthErrorKind.INVALID_CREDENTIALS: 401,
    AuthErrorKind.AUTHENTICATION_REQUIRED: 401,
    AuthErrorKind.INVALID_TOKEN_TYPE: 401,
    AuthErrorKind.ACCOUNT_INACTIVE: 403,
    AuthErrorKind.FORBIDDEN: 403,
    AuthErrorKind.NOT_FOUND: 404,
    AuthErrorKind.INVALID_OR_EXPIRED_TOKEN: 400,
    AuthErrorKind.WEAK_PASSWORD: 400,
    AuthErrorKind.VALIDATION_FAILED: 400,
    AuthErrorKind.RATE_LIMITED: 429,
    AuthErrorKind.INTERNAL: 500,
}

_MESSAGES = {
    AuthErrorKind.CONFLICT: "An account with this email already exists",
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    AuthErrorKind.AUTHENTICATION_REQUIRED: "Authentication required",
    AuthErrorKind.INVALID_TOKEN_TYPE: "Invalid token type",
    AuthErrorKind.ACCOUNT_INACTIVE: "Account not found or deactivated",
    AuthErrorKind.FORBIDDEN: "Access denied",
    AuthErrorKind.NOT_FOUND: "Resource not found",
    AuthErrorKind.INVALID_OR_EXPIRED_TOKEN: "Invalid or expired token",
    AuthErrorKind.WEAK_PASSWORD: "Password does not meet strength requirements",
    AuthErrorKind.VALIDATION_FAILED: "Request validation failed",
    AuthErrorKind.RATE_LIMITED: "Too many requests, try again later",
    AuthErrorKind.INTERNAL: "Internal server error",
}


class TokenErrorKind(str, Enum):
    """Why a signed token failed verification. Never sent to clients."""

    INVALID_SIGNATURE = "InvalidSignature"
    EXPIRED = "Expired"
    MALFORMED = "Malformed"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T = None

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[K]):
    kind: K
    message: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def detail(self) -> str:
        """Message to show: explicit one if given, else the kind's default."""
        if self.message:
            return self.message
        return getattr(self.kind, "default_message", str(self.kind))


Result = Union[Ok[T], Err[K]]


class AuthError(Exception):
    """Raised at the HTTP boundary to abort a request with a structured error."""

    def __init__(
        self,
        kind: AuthErrorKind,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[dict] = None,
    ):
        self.kind = kind
        self.message = message or kind.default_message
        self.status_code = status_code or kind.status_code
        self.headers = headers
        super().__init__(self.message)

    @classmethod
    def from_err(cls, err: Err, status_code: Optional[int] = None) -> AuthError:
        return cls(err.kind, err.detail, status_code=status_code)


def error_body(kind: AuthErrorKind, message: Optional[str] = None) -> dict:
    """JSON body used for every client-visible failure."""
    return {
        "success": False,
        "error": kind.value,
        "message": message or kind.default_message,
    }
