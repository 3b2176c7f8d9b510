# auth/middleware.py
"""
Request-time authentication.

Provides:
- Bearer token extraction
- The ``AuthGate`` verification pipeline
- FastAPI dependencies for required, optional and kind-restricted identity
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request

from auth.accounts import AccountStore
from auth.errors import AuthError, AuthErrorKind, Err, Ok, Result
from auth.models import AccountKind, Identity, TokenPurpose
from auth.sessions import SessionStore
from auth.tokens import TokenCodec

_logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer"


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.

    Returns None when the header is missing or not a single bearer token.
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != BEARER_PREFIX:
        return None

    return parts[1]


class AuthGate:
    """
    Linear, fail-closed verification of a bearer token.

    Steps: extract, verify signature and expiry, require the access
    purpose, require a live session row, require an active account.
    """

    def __init__(
        self,
        codec: TokenCodec,
        sessions: SessionStore,
        accounts: AccountStore,
        require_session: bool = True,
    ):
        self.codec = codec
        self.sessions = sessions
        self.accounts = accounts
        self.require_session = require_session

    def authenticate(self, authorization: Optional[str]) -> Result[Identity, AuthErrorKind]:
        token = extract_bearer_token(authorization)
        if token is None:
            return Err(AuthErrorKind.AUTHENTICATION_REQUIRED)

        verified = self.codec.verify(token)
        if isinstance(verified, Err):
            _logger.info(f"Rejected bearer token: {verified.kind.value}")
            return Err(AuthErrorKind.AUTHENTICATION_REQUIRED)

        claims = verified.value
        if claims.purpose != TokenPurpose.ACCESS:
            return Err(AuthErrorKind.INVALID_TOKEN_TYPE)

        if self.require_session and self.sessions.find_active(token) is None:
            _logger.info(f"Rejected bearer token: no active session for account {claims.account_id}")
            return Err(AuthErrorKind.AUTHENTICATION_REQUIRED)

        if self.accounts.find_active(claims.account_id) is None:
            return Err(AuthErrorKind.ACCOUNT_INACTIVE)

        return Ok(Identity(
            account_id=claims.account_id,
            email=claims.email,
            kind=claims.kind,
            token=token,
        ))


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_required_identity(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> Identity:
    """
    FastAPI dependency: verified identity (required).

    Raises AuthError (401/403) when any gate step fails.
    """
    result = gate.authenticate(request.headers.get("authorization"))
    if isinstance(result, Err):
        raise AuthError.from_err(result)

    request.state.identity = result.value
    return result.value


def get_optional_identity(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> Optional[Identity]:
    """
    FastAPI dependency: verified identity if present.

    Returns None for anonymous or failed callers (no error).
    """
    result = gate.authenticate(request.headers.get("authorization"))
    identity = result.value if isinstance(result, Ok) else None
    request.state.identity = identity
    return identity


def require_account_kind(kind: AccountKind):
    """
    Factory for account-kind requirement dependencies.

    Usage:
        @router.post("/categories")
        def create_category(identity: Identity = Depends(require_account_kind(AccountKind.PROFESSIONAL))):
            ...
    """
    required = AccountKind(kind)

    def check_kind(identity: Identity = Depends(get_required_identity)) -> Identity:
        if identity.kind != required:
            raise AuthError(
                AuthErrorKind.FORBIDDEN,
                f"This endpoint requires a {required.value} account",
            )
        return identity

    return check_kind
