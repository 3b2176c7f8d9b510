"""
Persistence layer.

Provides the SQLite-backed ``Database`` handle shared by the account,
session and password-reset stores.
"""

from persistence.db import Database, DatabaseNotInitializedError

__all__ = [
    "Database",
    "DatabaseNotInitializedError",
]
