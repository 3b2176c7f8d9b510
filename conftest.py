"""Configure pytest for the AssetSync API."""
import os
import sys
from pathlib import Path

import pytest

# =============================================================================
# CI/Test Environment Configuration
# =============================================================================
# Set environment for tests BEFORE any imports
# This ensures rate limiting bypass is active and app.main can be imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("AUTH_RATE_LIMIT_MODE", "ci")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ASSETSYNC_DB_PATH", ":memory:")
os.environ.setdefault("SESSION_SWEEP_INTERVAL_SECONDS", "0")

app_path = Path(__file__).parent
if str(app_path) not in sys.path:
    sys.path.insert(0, str(app_path))

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


def pytest_configure(config):
    """Ensure paths and environment are set before test collection."""
    os.environ.setdefault("ENV", "test")
    os.environ.setdefault("AUTH_RATE_LIMIT_MODE", "ci")


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def database():
    """Fresh in-memory database, initialized and disposed per test."""
    from persistence.db import Database

    db = Database(":memory:")
    db.init()
    yield db
    db.dispose()


@pytest.fixture
def app_config():
    """App configuration for tests: in-memory db, cheap bcrypt, no sweeper."""
    from app.config import AppConfig

    return AppConfig(
        jwt_secret=TEST_JWT_SECRET,
        environment="test",
        bcrypt_rounds=4,
        db_path=":memory:",
        session_sweep_interval_seconds=0,
    )


@pytest.fixture
def reset_notifier():
    from auth.notifications import RecordingResetNotifier

    return RecordingResetNotifier()


@pytest.fixture
def client(app_config, reset_notifier):
    """TestClient with startup/shutdown events run."""
    from fastapi.testclient import TestClient

    from app.main import create_app

    with TestClient(create_app(app_config, notifier=reset_notifier)) as test_client:
        yield test_client
