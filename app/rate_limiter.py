# app/rate_limiter.py
"""
In-memory rate limiter for the unauthenticated auth endpoints.

Uses token bucket algorithm:
- Each (endpoint, client IP) pair gets a bucket with burst_size capacity
- Tokens refill at requests_per_minute / 60 per second
- Each request consumes 1 token
- When bucket is empty, request is rejected with 429 RateLimited

Designed for a single instance (no shared state).

CI/Test Mode:
- Set AUTH_RATE_LIMIT_MODE=ci to bypass rate limiting in tests
- Set AUTH_RATE_LIMIT_MODE=off to disable entirely (non-production only)
- Production safety: bypass NEVER activates when ENV=production
"""
from __future__ import annotations

import logging
import math
import os
import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, Tuple

from fastapi import Request

from auth.errors import AuthError, AuthErrorKind

_logger = logging.getLogger(__name__)

# =============================================================================
# Rate Limit Mode Configuration
# =============================================================================

RATE_LIMIT_MODE_PROD = "prod"  # Default: normal rate limiting
RATE_LIMIT_MODE_CI = "ci"      # CI/test: bypass rate limiting
RATE_LIMIT_MODE_OFF = "off"    # Off: bypass entirely (non-prod only)

STALE_BUCKET_SECONDS = 300.0


def _get_rate_limit_mode() -> str:
    return os.environ.get("AUTH_RATE_LIMIT_MODE", RATE_LIMIT_MODE_PROD).lower()


def _is_production() -> bool:
    return os.environ.get("ENV", "").lower() == "production"


def is_bypass_allowed() -> bool:
    """
    Determine if rate limit bypass is allowed.

    Safety invariants:
    - NEVER bypass in production, regardless of env vars
    - Only the ci and off modes bypass
    """
    mode = _get_rate_limit_mode()

    if mode == RATE_LIMIT_MODE_PROD:
        return False

    if _is_production():
        _logger.error(
            f"SECURITY: Rate limit bypass attempted in production with mode={mode}. "
            "Bypass DENIED. Set AUTH_RATE_LIMIT_MODE=prod or remove the variable."
        )
        return False

    if mode not in (RATE_LIMIT_MODE_CI, RATE_LIMIT_MODE_OFF):
        _logger.warning(f"Unknown AUTH_RATE_LIMIT_MODE={mode}; rate limiting stays on")
        return False

    return True


@dataclass
class TokenBucket:
    """Token bucket for a single client."""
    tokens: float
    last_refill: float
    max_tokens: float
    refill_rate: float  # tokens per second

    def consume(self, now: float) -> Tuple[bool, float]:
        """
        Try to consume a token.

        Returns:
            (allowed, retry_after_seconds)
        """
        elapsed = now - self.last_refill
        self.tokens = min(self.max_tokens, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True, 0.0

        tokens_needed = 1.0 - self.tokens
        return False, tokens_needed / self.refill_rate


@dataclass
class RateLimiter:
    """
    Token-bucket limiter keyed by an arbitrary client key.

    Attributes:
        requests_per_minute: Maximum sustained request rate
        burst_size: Maximum burst allowance (bucket capacity)
        clock: Callable returning current time (for testing)
    """
    requests_per_minute: int = 10
    burst_size: int = 5
    clock: Callable[[], float] = field(default=time.monotonic)
    _buckets: Dict[str, TokenBucket] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)
    _last_cleanup: float = field(default=0.0)

    def __post_init__(self):
        self._refill_rate = self.requests_per_minute / 60.0
        self._last_cleanup = self.clock()

    def check(self, key: str) -> Tuple[bool, float]:
        """
        Check if a request for ``key`` is allowed.

        Returns:
            (allowed, retry_after_seconds)
        """
        now = self.clock()

        with self._lock:
            if now - self._last_cleanup > STALE_BUCKET_SECONDS:
                self._cleanup_stale_buckets(now)
                self._last_cleanup = now

            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(
                    tokens=self.burst_size,
                    last_refill=now,
                    max_tokens=self.burst_size,
                    refill_rate=self._refill_rate,
                )
                self._buckets[key] = bucket

            return bucket.consume(now)

    def _cleanup_stale_buckets(self, now: float) -> None:
        stale = [
            key for key, bucket in self._buckets.items()
            if now - bucket.last_refill > STALE_BUCKET_SECONDS
        ]
        for key in stale:
            del self._buckets[key]

    def reset(self) -> None:
        """Reset all buckets (for testing)."""
        with self._lock:
            self._buckets.clear()


class BypassRateLimiter:
    """A rate limiter that always allows requests (CI/test mode)."""

    def check(self, key: str) -> Tuple[bool, float]:
        return True, 0.0

    def reset(self) -> None:
        pass


def build_rate_limiter(requests_per_minute: int, burst_size: int):
    """Return a bypass limiter in CI/test mode (when safe), else a real one."""
    if is_bypass_allowed():
        _logger.warning(
            f"RATE_LIMIT_BYPASS_ACTIVE: mode={_get_rate_limit_mode()}. "
            "This should only be used in CI/test environments."
        )
        return BypassRateLimiter()
    return RateLimiter(requests_per_minute=requests_per_minute, burst_size=burst_size)


def get_client_ip(request: Request) -> str:
    """
    Extract client IP from request, respecting X-Forwarded-For.

    Only the first IP in the X-Forwarded-For chain is trusted.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_ip = forwarded_for.split(",")[0].strip()
        if first_ip:
            return first_ip

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def enforce_auth_rate_limit(request: Request) -> None:
    """
    FastAPI dependency: throttle an auth endpoint per client IP.

    Raises AuthError(RATE_LIMITED) with a Retry-After header when exhausted.
    """
    limiter = request.app.state.rate_limiter
    key = f"{request.url.path}:{get_client_ip(request)}"
    allowed, retry_after = limiter.check(key)
    if not allowed:
        _logger.warning(f"Rate limited {request.url.path} for {get_client_ip(request)}")
        raise AuthError(
            AuthErrorKind.RATE_LIMITED,
            headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
        )
