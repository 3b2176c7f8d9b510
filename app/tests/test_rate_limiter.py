# app/tests/test_rate_limiter.py
"""
Tests for rate limiting functionality.

These tests verify:
1. Token bucket consumption and refill
2. Exceeding the limit returns 429 RateLimited with Retry-After
3. /health is not rate-limited and limits are per endpoint
4. CI bypass never activates in production
"""
import os
from unittest.mock import MagicMock, patch

import pytest

from app.rate_limiter import (
    BypassRateLimiter,
    RateLimiter,
    TokenBucket,
    build_rate_limiter,
    get_client_ip,
    is_bypass_allowed,
)


class TestTokenBucket:
    """Tests for TokenBucket class."""

    def test_initial_tokens_available(self):
        """Bucket starts with full tokens."""
        bucket = TokenBucket(tokens=3.0, last_refill=0.0, max_tokens=3.0, refill_rate=0.1667)
        allowed, retry_after = bucket.consume(0.0)
        assert allowed is True
        assert retry_after == 0.0

    def test_tokens_deplete(self):
        bucket = TokenBucket(tokens=2.0, last_refill=0.0, max_tokens=3.0, refill_rate=0.1667)
        assert bucket.consume(0.0)[0] is True
        assert bucket.consume(0.0)[0] is True

        allowed, retry_after = bucket.consume(0.0)
        assert allowed is False
        assert retry_after > 0

    def test_tokens_refill_over_time(self):
        bucket = TokenBucket(tokens=0.0, last_refill=0.0, max_tokens=3.0, refill_rate=1.0)
        allowed, _ = bucket.consume(1.0)
        assert allowed is True

    def test_tokens_cap_at_max(self):
        bucket = TokenBucket(tokens=3.0, last_refill=0.0, max_tokens=3.0, refill_rate=1.0)
        bucket.consume(100.0)
        assert bucket.tokens <= 3.0


class TestRateLimiter:
    """Tests for RateLimiter class."""

    def test_burst_then_denied(self):
        """Burst requests up to burst_size are allowed, then denied."""
        limiter = RateLimiter(requests_per_minute=10, burst_size=3, clock=lambda: 0.0)
        for i in range(3):
            allowed, _ = limiter.check("/auth/login:192.168.1.1")
            assert allowed is True, f"Request {i+1} should be allowed"

        allowed, retry_after = limiter.check("/auth/login:192.168.1.1")
        assert allowed is False
        # 1 token / (10/60) tokens per second
        assert 5 < retry_after < 7

    def test_different_keys_have_separate_buckets(self):
        limiter = RateLimiter(requests_per_minute=10, burst_size=1, clock=lambda: 0.0)
        assert limiter.check("/auth/login:10.0.0.1")[0] is True
        assert limiter.check("/auth/login:10.0.0.1")[0] is False
        assert limiter.check("/auth/register:10.0.0.1")[0] is True
        assert limiter.check("/auth/login:10.0.0.2")[0] is True

    def test_tokens_refill_after_time(self):
        current_time = [0.0]
        limiter = RateLimiter(requests_per_minute=60, burst_size=1, clock=lambda: current_time[0])
        assert limiter.check("k")[0] is True
        assert limiter.check("k")[0] is False

        current_time[0] = 1.0
        assert limiter.check("k")[0] is True

    def test_reset_clears_all_buckets(self):
        limiter = RateLimiter(requests_per_minute=10, burst_size=1, clock=lambda: 0.0)
        limiter.check("a")
        limiter.check("b")

        limiter.reset()

        assert limiter.check("a")[0] is True
        assert limiter.check("b")[0] is True


class TestBypassMode:
    """Tests for CI/test bypass safety."""

    def test_prod_mode_never_bypasses(self):
        with patch.dict(os.environ, {"AUTH_RATE_LIMIT_MODE": "prod", "ENV": "test"}):
            assert is_bypass_allowed() is False

    def test_ci_mode_bypasses_outside_production(self):
        with patch.dict(os.environ, {"AUTH_RATE_LIMIT_MODE": "ci", "ENV": "test"}):
            assert is_bypass_allowed() is True
            assert isinstance(build_rate_limiter(10, 5), BypassRateLimiter)

    def test_bypass_denied_in_production(self):
        with patch.dict(os.environ, {"AUTH_RATE_LIMIT_MODE": "off", "ENV": "production"}):
            assert is_bypass_allowed() is False
            assert isinstance(build_rate_limiter(10, 5), RateLimiter)

    def test_unknown_mode_keeps_limiting(self):
        with patch.dict(os.environ, {"AUTH_RATE_LIMIT_MODE": "sometimes", "ENV": "test"}):
            assert is_bypass_allowed() is False


class TestGetClientIp:
    """Tests for get_client_ip function."""

    def test_uses_x_forwarded_for_first_ip(self):
        request = MagicMock()
        request.headers = {"x-forwarded-for": "203.0.113.1, 198.51.100.1, 192.0.2.1"}
        request.client = MagicMock()
        request.client.host = "10.0.0.1"

        assert get_client_ip(request) == "203.0.113.1"

    def test_falls_back_to_client_host(self):
        request = MagicMock()
        request.headers = {}
        request.client = MagicMock()
        request.client.host = "192.168.1.100"

        assert get_client_ip(request) == "192.168.1.100"

    def test_returns_unknown_when_no_client(self):
        request = MagicMock()
        request.headers = {}
        request.client = None

        assert get_client_ip(request) == "unknown"


class TestRateLimiterIntegration:
    """Integration tests for rate limiting with FastAPI."""

    @pytest.fixture
    def client_strict(self, client):
        """Client whose auth endpoints allow one request per key."""
        client.app.state.rate_limiter = RateLimiter(requests_per_minute=60, burst_size=1)
        return client

    def _login(self, client):
        return client.post(
            "/auth/login",
            json={"email": "nobody@example.com", "password": "Whatever1!"},
        )

    def test_exceeding_limit_returns_429(self, client_strict):
        assert self._login(client_strict).status_code == 401

        response = self._login(client_strict)
        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "error": "RateLimited",
            "message": "Too many requests, try again later",
        }

    def test_429_includes_retry_after_header(self, client_strict):
        self._login(client_strict)
        response = self._login(client_strict)

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0

    def test_limits_are_per_endpoint(self, client_strict):
        self._login(client_strict)
        assert self._login(client_strict).status_code == 429

        response = client_strict.post(
            "/auth/password-reset-request",
            json={"email": "nobody@example.com"},
        )
        assert response.status_code == 200

    def test_health_not_rate_limited(self, client_strict):
        self._login(client_strict)
        assert self._login(client_strict).status_code == 429

        for _ in range(3):
            assert client_strict.get("/health").status_code == 200
