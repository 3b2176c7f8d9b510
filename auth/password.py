# auth/password.py
"""
Secure password hashing using bcrypt.

Bcrypt is designed for password hashing with:
- Automatic salt generation
- Configurable work factor (cost)
- Resistance to rainbow tables
"""

from __future__ import annotations

import logging
import re

import bcrypt

_logger = logging.getLogger(__name__)

# Work factor (cost) - higher = slower but more secure
BCRYPT_ROUNDS = 12
MIN_BCRYPT_ROUNDS = 4

# bcrypt only looks at the first 72 bytes of input
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 8

_SPECIAL_CHAR = re.compile(r"[^A-Za-z0-9]")


class PasswordHasher:
    """
    Hashes and verifies passwords with a fixed bcrypt work factor.

    The work factor is fixed per instance; production uses 12.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        if rounds < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"bcrypt rounds must be >= {MIN_BCRYPT_ROUNDS}")
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Bcrypt hash string (includes salt)

        Raises:
            ValueError: If the password is empty or longer than 72 bytes
        """
        if not password:
            raise ValueError("Password cannot be empty")

        password_bytes = password.encode("utf-8")
        if len(password_bytes) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")

        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Verify a password against its hash.

        Returns:
            True if password matches, False otherwise
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            _logger.warning(f"Password verification error: {e}")
            return False

    def burn(self, password: str) -> None:
        """Spend one verification's worth of time against a throwaway hash."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("unused-Placeholder-1!")
        self.verify(password, self._dummy_hash)


def is_password_strong(password: str) -> tuple[bool, str]:
    """
    Check if a password meets minimum strength requirements.

    Requirements:
    - At least 8 characters, at most 72 bytes
    - Contains an upper-case and a lower-case letter
    - Contains at least one digit
    - Contains at least one special character

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, "Password cannot be empty"

    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False, f"Password must be at most {MAX_PASSWORD_BYTES} bytes"

    if not any(c.isupper() for c in password):
        return False, "Password must contain at least one uppercase letter"

    if not any(c.islower() for c in password):
        return False, "Password must contain at least one lowercase letter"

    if not any(c.isdigit() for c in password):
        return False, "Password must contain at least one digit"

    if not _SPECIAL_CHAR.search(password):
        return False, "Password must contain at least one special character"

    return True, ""
