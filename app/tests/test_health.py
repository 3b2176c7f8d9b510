# app/tests/test_health.py
"""Tests for health endpoint, security headers and application wiring."""
import pytest
from fastapi.testclient import TestClient

from app.correlation import RequestIdLogFilter
from app.main import create_app


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_contains_required_keys(self, client):
        data = client.get("/health").json()

        for key in ("status", "service", "version", "environment", "database", "started_at"):
            assert key in data

    def test_health_status_is_healthy(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["service"] == "assetsync"
        assert data["database"] == "connected"

    def test_health_requires_no_auth(self, client):
        response = client.get("/health", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 200


class TestSecurityHeaders:

    def test_security_headers_present(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"

    def test_oversized_request_rejected(self, client):
        response = client.post(
            "/auth/login",
            content=b"x" * (2 * 1024 * 1024),
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 413


class TestLifecycle:
    """Startup opens the database; shutdown closes it."""

    def test_database_opened_and_disposed(self, app_config):
        app = create_app(app_config)
        db = app.state.db
        assert db.is_open is False

        with TestClient(app) as client:
            assert db.is_open is True
            assert set(db.table_names()) >= {"accounts", "sessions", "password_resets"}
            assert client.get("/health").status_code == 200

        assert db.is_open is False

    def test_separate_apps_do_not_share_state(self, app_config):
        first = create_app(app_config)
        second = create_app(app_config)

        assert first.state.db is not second.state.db
        assert first.state.account_service is not second.state.account_service

    def test_sweeper_started_when_enabled(self, app_config):
        app_config.session_sweep_interval_seconds = 3600
        app = create_app(app_config)

        with TestClient(app):
            assert app.state.sweeper.running is True

        assert app.state.sweeper.running is False


class TestUnexpectedErrors:

    def test_unhandled_exception_returns_internal(self, app_config):
        app = create_app(app_config)

        @app.get("/boom")
        def boom():
            raise RuntimeError("kaboom")

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom")

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Internal",
            "message": "Internal server error",
        }
        assert "kaboom" not in response.text

    def test_unhandled_exception_keeps_request_id(self, app_config, caplog):
        app = create_app(app_config)

        @app.get("/boom")
        def boom():
            raise RuntimeError("kaboom")

        caplog.handler.addFilter(RequestIdLogFilter())
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom", headers={"X-Request-Id": "req-500"})

        assert response.status_code == 500
        assert response.headers["X-Request-Id"] == "req-500"
        records = [r for r in caplog.records if r.name == "app.main" and r.levelname == "ERROR"]
        assert records
        assert records[-1].request_id == "req-500"
