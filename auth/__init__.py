# auth/__init__.py
"""
Authentication module.

Provides:
- Account, session and reset-ticket models
- Password hashing with bcrypt
- Signed access/refresh tokens (HS256)
- Session store and the request-time auth gate
- Account lifecycle service (register, login, logout, refresh, reset)
"""

from auth.errors import AuthError, AuthErrorKind, Err, Ok, TokenErrorKind
from auth.models import (
    Account,
    AccountKind,
    Identity,
    ResetTicket,
    SessionRecord,
    TokenClaims,
    TokenPair,
    TokenPurpose,
)
from auth.service import AccountService, AuthSession

__all__ = [
    "Account",
    "AccountKind",
    "AccountService",
    "AuthError",
    "AuthErrorKind",
    "AuthSession",
    "Err",
    "Identity",
    "Ok",
    "ResetTicket",
    "SessionRecord",
    "TokenClaims",
    "TokenErrorKind",
    "TokenPair",
    "TokenPurpose",
]
