# auth/tokens.py
"""
Signed token codec.

Tokens are compact JWS strings (HS256) carrying a ``TokenClaims`` payload.
Access and refresh tokens share the signing secret and are told apart by
the ``purpose`` claim.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from jose import JWTError, jwt

from auth.errors import Err, Ok, Result, TokenErrorKind
from auth.models import Account, TokenClaims, TokenPair, TokenPurpose, utcnow

_logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_TTL = timedelta(minutes=15)
REFRESH_TOKEN_TTL = timedelta(days=7)

# Expiry is checked against our own clock so that it agrees with the
# session store.
_DECODE_OPTIONS = {
    "verify_exp": False,
    "verify_nbf": False,
    "verify_aud": False,
}


def sign_token(claims: TokenClaims, secret: str) -> str:
    """Encode and sign a claim set."""
    if not secret:
        raise ValueError("Signing secret is not configured")
    return jwt.encode(claims.to_payload(), secret, algorithm=ALGORITHM)


def verify_token(
    token: str,
    secret: str,
    now: Optional[datetime] = None,
) -> Result[TokenClaims, TokenErrorKind]:
    """
    Verify a token and return its claims.

    Returns:
        Ok(TokenClaims) on success
        Err(MALFORMED) if the token cannot be parsed
        Err(INVALID_SIGNATURE) on MAC mismatch or an unexpected algorithm
        Err(EXPIRED) if now is past the expiry
    """
    if not secret:
        raise ValueError("Signing secret is not configured")

    try:
        header = jwt.get_unverified_header(token)
        jwt.get_unverified_claims(token)
    except (JWTError, AttributeError, TypeError):
        return Err(TokenErrorKind.MALFORMED)

    if header.get("alg") != ALGORITHM:
        return Err(TokenErrorKind.INVALID_SIGNATURE, f"Unexpected algorithm {header.get('alg')!r}")

    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
    except JWTError:
        return Err(TokenErrorKind.INVALID_SIGNATURE)

    try:
        claims = TokenClaims.from_payload(payload)
    except (KeyError, TypeError, ValueError):
        return Err(TokenErrorKind.MALFORMED)

    current = int((now or utcnow()).timestamp())
    if current > claims.expires_at:
        return Err(TokenErrorKind.EXPIRED)

    return Ok(claims)


class TokenCodec:
    """
    Issues and verifies tokens with a configured secret and lifetimes.

    Args:
        secret: Symmetric signing secret (required)
        access_ttl: Lifetime of access tokens
        refresh_ttl: Lifetime of refresh tokens
        clock: Callable returning the current time (for testing)
    """

    def __init__(
        self,
        secret: str,
        access_ttl: timedelta = ACCESS_TOKEN_TTL,
        refresh_ttl: timedelta = REFRESH_TOKEN_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ValueError("Signing secret is not configured")
        self._secret = secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock = clock

    def ttl_for(self, purpose: TokenPurpose) -> timedelta:
        if purpose == TokenPurpose.ACCESS:
            return self.access_ttl
        return self.refresh_ttl

    def issue(self, account: Account, purpose: TokenPurpose) -> tuple[str, TokenClaims]:
        """Sign a fresh token for ``account``; issued-at is now."""
        claims = TokenClaims.new(account, purpose, self.ttl_for(purpose), now=self.clock())
        return sign_token(claims, self._secret), claims

    def issue_pair(self, account: Account) -> TokenPair:
        access_token, _ = self.issue(account, TokenPurpose.ACCESS)
        refresh_token, _ = self.issue(account, TokenPurpose.REFRESH)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def verify(self, token: str) -> Result[TokenClaims, TokenErrorKind]:
        result = verify_token(token, self._secret, now=self.clock())
        if isinstance(result, Err):
            _logger.debug(f"Token rejected: {result.kind.value}")
        return result
