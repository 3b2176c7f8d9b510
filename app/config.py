# app/config.py
"""
Centralized configuration management with startup validation.

Defines REQUIRED vs OPTIONAL environment variables and provides
safe configuration loading with validation and logging.
"""
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

SERVICE_NAME = "assetsync"
SERVICE_VERSION = "0.1.0"

DEFAULT_ACCESS_TOKEN_TTL_SECONDS = 15 * 60
DEFAULT_REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_RESET_TICKET_TTL_SECONDS = 60 * 60
DEFAULT_BCRYPT_ROUNDS = 12
MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 16
DEFAULT_DB_PATH = "data/assetsync.db"
DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS = 60 * 60
DEFAULT_AUTH_RATE_LIMIT_PER_MINUTE = 10
DEFAULT_AUTH_RATE_LIMIT_BURST = 5
DEFAULT_MAX_REQUEST_SIZE_BYTES = 1_048_576  # 1MB
MIN_REQUEST_SIZE_BYTES = 1024  # 1KB minimum
MIN_JWT_SECRET_LENGTH = 32

# Sensitive substrings that should never appear in logs
SENSITIVE_SUBSTRINGS = ("key", "token", "secret", "password", "credential", "auth")


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class AppConfig:
    """Application configuration loaded from environment."""

    # REQUIRED: token signing secret (never logged)
    jwt_secret: str = field(default="", repr=False)

    # Service info
    service_name: str = SERVICE_NAME
    service_version: str = SERVICE_VERSION
    environment: str = "development"

    # Token and ticket lifetimes
    access_token_ttl_seconds: int = DEFAULT_ACCESS_TOKEN_TTL_SECONDS
    refresh_token_ttl_seconds: int = DEFAULT_REFRESH_TOKEN_TTL_SECONDS
    reset_ticket_ttl_seconds: int = DEFAULT_RESET_TICKET_TTL_SECONDS

    # Password hashing work factor
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    # Storage
    db_path: str = DEFAULT_DB_PATH
    session_sweep_interval_seconds: int = DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS

    # Abuse prevention
    auth_rate_limit_per_minute: int = DEFAULT_AUTH_RATE_LIMIT_PER_MINUTE
    auth_rate_limit_burst: int = DEFAULT_AUTH_RATE_LIMIT_BURST
    max_request_size_bytes: int = DEFAULT_MAX_REQUEST_SIZE_BYTES

    # Warnings collected during config load
    warnings: list = field(default_factory=list)

    @property
    def jwt_secret_present(self) -> bool:
        return bool(self.jwt_secret)


# =============================================================================
# Configuration Loading
# =============================================================================


def _parse_int_env(
    name: str,
    default: int,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> tuple[int, Optional[str]]:
    """
    Parse an integer environment variable with validation.

    Returns (value, warning_message).
    On invalid input, returns default with a warning.
    """
    raw = os.environ.get(name)
    if raw is None:
        return default, None

    try:
        value = int(raw)
    except ValueError:
        warning = f"{name}='{raw}' is not a valid integer; using default {default}"
        return default, warning

    if min_value is not None and value < min_value:
        warning = f"{name}={value} is below minimum {min_value}; using default {default}"
        return default, warning

    if max_value is not None and value > max_value:
        warning = f"{name}={value} is above maximum {max_value}; using default {default}"
        return default, warning

    return value, None


def load_config(fail_fast: bool = True) -> AppConfig:
    """
    Load and validate application configuration from environment.

    Args:
        fail_fast: If True, raise ConfigurationError on critical issues.
                   If False, collect warnings and continue.

    Returns:
        AppConfig instance with validated configuration.

    Raises:
        ConfigurationError: If JWT_SECRET is missing and fail_fast is True.
    """
    warnings = []

    environment = os.environ.get("ENV", "development")

    jwt_secret = os.environ.get("JWT_SECRET", "")
    if not jwt_secret:
        if fail_fast:
            raise ConfigurationError("JWT_SECRET is required but not set")
        warnings.append("JWT_SECRET is not set; every auth operation will fail")
    elif len(jwt_secret) < MIN_JWT_SECRET_LENGTH:
        warnings.append(
            f"JWT_SECRET is shorter than {MIN_JWT_SECRET_LENGTH} characters; "
            "use a longer random value"
        )

    int_settings = {}
    for name, default, min_value, max_value in (
        ("ACCESS_TOKEN_TTL_SECONDS", DEFAULT_ACCESS_TOKEN_TTL_SECONDS, 1, None),
        ("REFRESH_TOKEN_TTL_SECONDS", DEFAULT_REFRESH_TOKEN_TTL_SECONDS, 1, None),
        ("RESET_TICKET_TTL_SECONDS", DEFAULT_RESET_TICKET_TTL_SECONDS, 1, None),
        ("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS, MIN_BCRYPT_ROUNDS, MAX_BCRYPT_ROUNDS),
        ("SESSION_SWEEP_INTERVAL_SECONDS", DEFAULT_SESSION_SWEEP_INTERVAL_SECONDS, 0, None),
        ("AUTH_RATE_LIMIT_PER_MINUTE", DEFAULT_AUTH_RATE_LIMIT_PER_MINUTE, 1, None),
        ("AUTH_RATE_LIMIT_BURST", DEFAULT_AUTH_RATE_LIMIT_BURST, 1, None),
        ("MAX_REQUEST_SIZE_BYTES", DEFAULT_MAX_REQUEST_SIZE_BYTES, MIN_REQUEST_SIZE_BYTES, None),
    ):
        value, warning = _parse_int_env(name, default, min_value=min_value, max_value=max_value)
        if warning:
            warnings.append(warning)
        int_settings[name.lower()] = value

    if int_settings["bcrypt_rounds"] < DEFAULT_BCRYPT_ROUNDS and environment == "production":
        warnings.append(
            f"BCRYPT_ROUNDS={int_settings['bcrypt_rounds']} is below "
            f"{DEFAULT_BCRYPT_ROUNDS} in production"
        )

    # Log warnings
    for warning in warnings:
        logger.warning(f"[CONFIG] {warning}")

    return AppConfig(
        jwt_secret=jwt_secret,
        environment=environment,
        db_path=os.environ.get("ASSETSYNC_DB_PATH", DEFAULT_DB_PATH),
        warnings=warnings,
        **int_settings,
    )


def log_config_snapshot(config: AppConfig) -> str:
    """
    Generate and log a safe configuration snapshot.

    Returns the snapshot string for testing purposes.
    Never logs actual secret values - only boolean presence flags.
    """
    snapshot = (
        f"[STARTUP] service={config.service_name} "
        f"version={config.service_version} "
        f"environment={config.environment} "
        f"db_path={config.db_path} "
        f"access_ttl_seconds={config.access_token_ttl_seconds} "
        f"refresh_ttl_seconds={config.refresh_token_ttl_seconds} "
        f"bcrypt_rounds={config.bcrypt_rounds} "
        f"sweep_interval_seconds={config.session_sweep_interval_seconds} "
        f"jwt_secret_present={config.jwt_secret_present}"
    )
    logger.info(snapshot)
    return snapshot


def validate_config_snapshot_safety(snapshot: str) -> bool:
    """
    Validate that a config snapshot doesn't contain sensitive values.

    Returns True if safe, False if potentially unsafe.
    """
    snapshot_lower = snapshot.lower()

    # Allow "secret_present=true" but not "secret=" followed by a value
    for sensitive in SENSITIVE_SUBSTRINGS:
        pattern = rf"{sensitive}=(?!true|false)"
        if re.search(pattern, snapshot_lower):
            return False

    return True
