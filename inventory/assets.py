# inventory/assets.py
"""
Asset persistence.

Every read filters out soft-deleted rows; ``soft_delete`` only sets
``deleted_at``. Searches are always scoped to one owner.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from auth.models import from_db_time, to_db_time, utcnow
from inventory.models import Asset, AssetCondition, AssetStatus, Page
from persistence.db import Database

_logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "name": "name",
    "purchase_date": "purchase_date",
    "created_at": "created_at",
    "purchase_price": "CAST(purchase_price AS REAL)",
}

_UPDATABLE = (
    "category_id",
    "name",
    "description",
    "brand",
    "model",
    "serial_number",
    "condition",
    "status",
    "purchase_price",
    "purchase_currency",
    "purchase_date",
    "tags",
    "notes",
)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_column(field: str, value):
    if value is None:
        return None
    if field in ("condition", "status"):
        return value.value
    if field == "purchase_date":
        return to_db_time(value)
    if field == "tags":
        return json.dumps(value)
    return value


class AssetStore:
    """Reads and writes rows of the ``assets`` table."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def insert(self, asset: Asset) -> Asset:
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO assets
                (id, owner_id, category_id, name, description, brand, model,
                 serial_number, condition, status, purchase_price, purchase_currency,
                 purchase_date, tags, notes, created_at, updated_at, deleted_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    asset.id,
                    asset.owner_id,
                    asset.category_id,
                    asset.name,
                    asset.description,
                    asset.brand,
                    asset.model,
                    asset.serial_number,
                    _to_column("condition", asset.condition),
                    asset.status.value,
                    asset.purchase_price,
                    asset.purchase_currency,
                    to_db_time(asset.purchase_date),
                    json.dumps(asset.tags),
                    asset.notes,
                    to_db_time(asset.created_at),
                    to_db_time(asset.updated_at),
                    to_db_time(asset.deleted_at),
                ),
            )
        _logger.debug(f"Created asset {asset.id} for account {asset.owner_id}")
        return asset

    def find(self, asset_id: str) -> Optional[Asset]:
        """Look up an asset that has not been deleted."""
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM assets WHERE id = ? AND deleted_at IS NULL",
                (asset_id,),
            ).fetchone()
        return _row_to_asset(row) if row else None

    def update(self, asset_id: str, **changes) -> Optional[Asset]:
        """
        Apply ``changes`` (field name to value) to an asset.

        Returns the updated asset, or None if it is missing or deleted.
        """
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update asset fields: {sorted(unknown)}")

        with self.db.transaction() as conn:
            if changes:
                assignments = ", ".join(f"{field} = ?" for field in changes)
                values = [_to_column(field, value) for field, value in changes.items()]
                cursor = conn.execute(
                    f"UPDATE assets SET {assignments}, updated_at = ? "
                    "WHERE id = ? AND deleted_at IS NULL",
                    (*values, to_db_time(self.clock()), asset_id),
                )
                if cursor.rowcount == 0:
                    return None
            return self.find(asset_id)

    def soft_delete(self, asset_id: str) -> bool:
        """Set the soft-delete marker. Returns False if already deleted or missing."""
        now = to_db_time(self.clock())
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE assets SET deleted_at = ?, updated_at = ? "
                "WHERE id = ? AND deleted_at IS NULL",
                (now, now, asset_id),
            )
            return cursor.rowcount > 0

    def search(
        self,
        owner_id: str,
        query: Optional[str] = None,
        category_id: Optional[str] = None,
        status: Optional[AssetStatus] = None,
        condition: Optional[AssetCondition] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page[Asset]:
        """
        One page of an owner's assets.

        ``query`` matches a case-insensitive substring of the name or the
        description. Pages are 1-based.
        """
        column = SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValueError(f"Unknown sort column: {sort_by}")
        direction = "ASC" if sort_order == "asc" else "DESC"

        where = ["owner_id = ?", "deleted_at IS NULL"]
        params: list = [owner_id]
        if query:
            pattern = f"%{_escape_like(query.lower())}%"
            where.append(
                "(LOWER(name) LIKE ? ESCAPE '\\' OR LOWER(COALESCE(description, '')) LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern])
        if category_id:
            where.append("category_id = ?")
            params.append(category_id)
        if status is not None:
            where.append("status = ?")
            params.append(status.value)
        if condition is not None:
            where.append("condition = ?")
            params.append(condition.value)
        clause = " AND ".join(where)

        with self.db.transaction() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) FROM assets WHERE {clause}",
                params,
            ).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM assets WHERE {clause} "
                f"ORDER BY {column} {direction}, id ASC LIMIT ? OFFSET ?",
                (*params, limit, (page - 1) * limit),
            ).fetchall()
        return Page(items=[_row_to_asset(row) for row in rows], total=total)

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def count_in_category(self, category_id: str) -> int:
        """Assets (not deleted) filed under a category."""
        with self.db.transaction() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM assets WHERE category_id = ? AND deleted_at IS NULL",
                (category_id,),
            ).fetchone()[0]

    def recent(self, owner_id: str, limit: int = 5) -> List[Asset]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM assets WHERE owner_id = ? AND deleted_at IS NULL "
                "ORDER BY created_at DESC, id ASC LIMIT ?",
                (owner_id, limit),
            ).fetchall()
        return [_row_to_asset(row) for row in rows]

    def count_by_status(self, owner_id: str) -> Dict[AssetStatus, int]:
        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS count FROM assets "
                "WHERE owner_id = ? AND deleted_at IS NULL "
                "GROUP BY status ORDER BY status",
                (owner_id,),
            ).fetchall()
        return {AssetStatus(row["status"]): row["count"] for row in rows}

    def portfolio_value(self, owner_id: str) -> Decimal:
        """Sum of purchase prices of the owner's active assets."""
        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT purchase_price FROM assets "
                "WHERE owner_id = ? AND deleted_at IS NULL AND status = ?",
                (owner_id, AssetStatus.ACTIVE.value),
            ).fetchall()
        return sum((Decimal(row["purchase_price"]) for row in rows), Decimal("0"))


def _row_to_asset(row) -> Asset:
    """Convert a database row to an Asset object."""
    return Asset(
        id=row["id"],
        owner_id=row["owner_id"],
        category_id=row["category_id"],
        name=row["name"],
        description=row["description"],
        brand=row["brand"],
        model=row["model"],
        serial_number=row["serial_number"],
        condition=AssetCondition(row["condition"]) if row["condition"] else None,
        status=AssetStatus(row["status"]),
        purchase_price=row["purchase_price"],
        purchase_currency=row["purchase_currency"],
        purchase_date=from_db_time(row["purchase_date"]),
        tags=json.loads(row["tags"]) if row["tags"] else [],
        notes=row["notes"],
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
        deleted_at=from_db_time(row["deleted_at"]),
    )
