# inventory/categories.py
"""
Category persistence.

Categories form a tree through ``parent_id``. They are never removed;
deactivation clears ``is_active`` and hides them from default listings.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Callable, List, Optional

from auth.models import from_db_time, to_db_time, utcnow
from inventory.models import Category, Page
from persistence.db import Database

_logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "name": "name",
    "created_at": "created_at",
    "sort_order": "sort_order",
}

_UPDATABLE = ("name", "slug", "description", "parent_id", "icon", "marketplaces", "is_active", "sort_order")


class DuplicateSlugError(Exception):
    """A category with this slug already exists."""


class CategoryStore:
    """Reads and writes rows of the ``categories`` table."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def insert(self, category: Category) -> Category:
        """
        Persist a new category.

        Raises:
            DuplicateSlugError: If the slug is taken
        """
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO categories
                    (id, name, slug, description, parent_id, icon, marketplaces,
                     is_active, sort_order, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        category.id,
                        category.name,
                        category.slug,
                        category.description,
                        category.parent_id,
                        category.icon,
                        json.dumps(category.marketplaces),
                        int(category.is_active),
                        category.sort_order,
                        to_db_time(category.created_at),
                        to_db_time(category.updated_at),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateSlugError(category.slug) from e
        return category

    def find_by_id(self, category_id: str) -> Optional[Category]:
        """Look up a category by ID, including inactive ones."""
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM categories WHERE id = ?",
                (category_id,),
            ).fetchone()
        return _row_to_category(row) if row else None

    def find_by_slug(self, slug: str) -> Optional[Category]:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM categories WHERE slug = ?",
                (slug,),
            ).fetchone()
        return _row_to_category(row) if row else None

    def list_page(
        self,
        roots_only: bool = False,
        active: Optional[bool] = True,
        sort_by: str = "sort_order",
        sort_order: str = "asc",
        limit: int = 50,
        offset: int = 0,
    ) -> Page[Category]:
        """
        List categories.

        Args:
            roots_only: Only categories without a parent
            active: True/False filters on ``is_active``, None returns both
            sort_by: One of ``SORT_COLUMNS``
            sort_order: "asc" or "desc"
        """
        column = SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValueError(f"Unknown sort column: {sort_by}")
        direction = "DESC" if sort_order == "desc" else "ASC"

        where = []
        params: list = []
        if roots_only:
            where.append("parent_id IS NULL")
        if active is not None:
            where.append("is_active = ?")
            params.append(int(active))
        clause = f"WHERE {' AND '.join(where)}" if where else ""

        with self.db.transaction() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) FROM categories {clause}",
                params,
            ).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM categories {clause} "
                f"ORDER BY {column} {direction}, name ASC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ).fetchall()
        return Page(items=[_row_to_category(row) for row in rows], total=total)

    def update(self, category_id: str, **changes) -> Optional[Category]:
        """
        Apply ``changes`` (column name to value) to a category.

        Returns the updated category, or None if it does not exist.

        Raises:
            DuplicateSlugError: If the new slug is taken
        """
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update category fields: {sorted(unknown)}")
        if "marketplaces" in changes:
            changes["marketplaces"] = json.dumps(changes["marketplaces"] or [])
        if "is_active" in changes:
            changes["is_active"] = int(changes["is_active"])

        try:
            with self.db.transaction() as conn:
                if changes:
                    assignments = ", ".join(f"{column} = ?" for column in changes)
                    cursor = conn.execute(
                        f"UPDATE categories SET {assignments}, updated_at = ? WHERE id = ?",
                        (*changes.values(), to_db_time(self.clock()), category_id),
                    )
                    if cursor.rowcount == 0:
                        return None
                return self.find_by_id(category_id)
        except sqlite3.IntegrityError as e:
            raise DuplicateSlugError(changes.get("slug")) from e

    def deactivate(self, category_id: str) -> bool:
        """Clear ``is_active``. Returns False if missing or already inactive."""
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE categories SET is_active = 0, updated_at = ? "
                "WHERE id = ? AND is_active = 1",
                (to_db_time(self.clock()), category_id),
            )
            return cursor.rowcount > 0

    def ancestor_ids(self, category_id: str) -> List[str]:
        """IDs from ``category_id``'s parent up to its root."""
        ancestors: List[str] = []
        with self.db.transaction() as conn:
            current = category_id
            while True:
                row = conn.execute(
                    "SELECT parent_id FROM categories WHERE id = ?",
                    (current,),
                ).fetchone()
                if row is None or row["parent_id"] is None or row["parent_id"] in ancestors:
                    return ancestors
                current = row["parent_id"]
                ancestors.append(current)


def _row_to_category(row) -> Category:
    """Convert a database row to a Category object."""
    return Category(
        id=row["id"],
        name=row["name"],
        slug=row["slug"],
        description=row["description"],
        parent_id=row["parent_id"],
        icon=row["icon"],
        marketplaces=json.loads(row["marketplaces"]) if row["marketplaces"] else [],
        is_active=bool(row["is_active"]),
        sort_order=row["sort_order"],
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
    )
