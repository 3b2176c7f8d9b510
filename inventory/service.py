# inventory/service.py
"""
Inventory service.

Handles:
- Category tree maintenance (create, update, deactivate)
- Owner-scoped asset CRUD and search
- The owner dashboard

Operations return ``Ok(value)`` or ``Err(AuthErrorKind, message)`` in the
same way ``AccountService`` does.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from auth.errors import AuthErrorKind, Err, Ok, Result
from inventory.assets import AssetStore
from inventory.categories import CategoryStore, DuplicateSlugError
from inventory.models import (
    Asset,
    AssetCondition,
    AssetStatus,
    Category,
    Dashboard,
    Page,
)

_logger = logging.getLogger(__name__)

RECENT_ASSETS = 5

# Columns a partial update may change but never clear
_REQUIRED_ASSET_FIELDS = ("name", "category_id", "purchase_price", "purchase_currency", "purchase_date", "status", "tags")
_REQUIRED_CATEGORY_FIELDS = ("name", "slug", "marketplaces", "sort_order")

CATEGORY_NOT_FOUND = "Category not found"
ASSET_NOT_FOUND = "Asset not found"
INVALID_CATEGORY = "Invalid category ID"


def _cleared_field(changes: dict, required: tuple) -> Optional[Err]:
    for field in required:
        if field in changes and changes[field] is None:
            return Err(AuthErrorKind.VALIDATION_FAILED, f"{field} cannot be null")
    return None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InventoryService:
    """Orchestrates the category and asset stores."""

    def __init__(self, categories: CategoryStore, assets: AssetStore):
        self.categories = categories
        self.assets = assets

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def list_categories(
        self,
        roots_only: bool = False,
        active: Optional[bool] = True,
        sort_by: str = "sort_order",
        sort_order: str = "asc",
        limit: int = 50,
        offset: int = 0,
    ) -> Page[Category]:
        return self.categories.list_page(
            roots_only=roots_only,
            active=active,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

    def get_category(self, category_id: str) -> Result[Category, AuthErrorKind]:
        category = self.categories.find_by_id(category_id)
        if category is None:
            return Err(AuthErrorKind.NOT_FOUND, CATEGORY_NOT_FOUND)
        return Ok(category)

    def create_category(
        self,
        name: str,
        slug: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
        icon: Optional[str] = None,
        marketplaces: Optional[List[str]] = None,
    ) -> Result[Category, AuthErrorKind]:
        """
        Add a category to the tree.

        Returns:
            Ok(Category) on success
            Err(VALIDATION_FAILED) if the parent does not exist
            Err(CONFLICT) if the slug is taken
        """
        if parent_id and self.categories.find_by_id(parent_id) is None:
            return Err(AuthErrorKind.VALIDATION_FAILED, "Parent category not found")

        category = Category.new(
            name=name,
            slug=slug,
            description=description,
            parent_id=parent_id,
            icon=icon,
            marketplaces=marketplaces,
            now=self.categories.clock(),
        )
        try:
            self.categories.insert(category)
        except DuplicateSlugError:
            return Err(AuthErrorKind.CONFLICT, "Category with this slug already exists")

        _logger.info(f"Created category {category.slug} ({category.id})")
        return Ok(category)

    def update_category(self, category_id: str, **changes) -> Result[Category, AuthErrorKind]:
        """
        Apply a partial update to a category.

        A ``parent_id`` of None moves the category to the root. A category
        cannot become its own parent or be moved below one of its descendants.
        """
        if self.categories.find_by_id(category_id) is None:
            return Err(AuthErrorKind.NOT_FOUND, CATEGORY_NOT_FOUND)
        cleared = _cleared_field(changes, _REQUIRED_CATEGORY_FIELDS)
        if cleared is not None:
            return cleared

        parent_id = changes.get("parent_id")
        if parent_id:
            if parent_id == category_id:
                return Err(AuthErrorKind.VALIDATION_FAILED, "Category cannot be its own parent")
            if self.categories.find_by_id(parent_id) is None:
                return Err(AuthErrorKind.VALIDATION_FAILED, "Parent category not found")
            if category_id in self.categories.ancestor_ids(parent_id):
                return Err(
                    AuthErrorKind.VALIDATION_FAILED,
                    "Category cannot be moved under its own descendant",
                )

        try:
            category = self.categories.update(category_id, **changes)
        except DuplicateSlugError:
            return Err(AuthErrorKind.CONFLICT, "Category with this slug already exists")
        if category is None:
            return Err(AuthErrorKind.NOT_FOUND, CATEGORY_NOT_FOUND)

        _logger.info(f"Updated category {category_id}")
        return Ok(category)

    def delete_category(self, category_id: str) -> Result[None, AuthErrorKind]:
        """Deactivate a category that no live asset is filed under."""
        with self.categories.db.transaction():
            if self.categories.find_by_id(category_id) is None:
                return Err(AuthErrorKind.NOT_FOUND, CATEGORY_NOT_FOUND)
            if self.assets.count_in_category(category_id) > 0:
                return Err(
                    AuthErrorKind.VALIDATION_FAILED,
                    "Cannot delete category that is in use by assets",
                )
            self.categories.deactivate(category_id)

        _logger.info(f"Deactivated category {category_id}")
        return Ok(None)

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    def search_assets(
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
        return self.assets.search(
            owner_id,
            query=query,
            category_id=category_id,
            status=status,
            condition=condition,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    def get_asset(self, owner_id: str, asset_id: str) -> Result[Asset, AuthErrorKind]:
        """
        Fetch one of the owner's assets.

        Returns:
            Ok(Asset) on success
            Err(NOT_FOUND) if missing or deleted
            Err(FORBIDDEN) if another account owns it
        """
        asset = self.assets.find(asset_id)
        if asset is None:
            return Err(AuthErrorKind.NOT_FOUND, ASSET_NOT_FOUND)
        if asset.owner_id != owner_id:
            _logger.warning(f"Account {owner_id} denied access to asset {asset_id}")
            return Err(AuthErrorKind.FORBIDDEN)
        return Ok(asset)

    def create_asset(
        self,
        owner_id: str,
        category_id: str,
        name: str,
        purchase_price: str,
        purchase_date: datetime,
        **details,
    ) -> Result[Asset, AuthErrorKind]:
        """Create an asset filed under an active category."""
        if not self._category_accepts_assets(category_id):
            return Err(AuthErrorKind.VALIDATION_FAILED, INVALID_CATEGORY)

        asset = Asset.new(
            owner_id=owner_id,
            category_id=category_id,
            name=name,
            purchase_price=purchase_price,
            purchase_date=_as_utc(purchase_date),
            now=self.assets.clock(),
            **details,
        )
        self.assets.insert(asset)
        _logger.info(f"Created asset {asset.id} for account {owner_id}")
        return Ok(asset)

    def update_asset(self, owner_id: str, asset_id: str, **changes) -> Result[Asset, AuthErrorKind]:
        """Apply a partial update to one of the owner's assets."""
        with self.assets.db.transaction():
            current = self.get_asset(owner_id, asset_id)
            if isinstance(current, Err):
                return current
            cleared = _cleared_field(changes, _REQUIRED_ASSET_FIELDS)
            if cleared is not None:
                return cleared

            category_id = changes.get("category_id")
            if category_id and not self._category_accepts_assets(category_id):
                return Err(AuthErrorKind.VALIDATION_FAILED, INVALID_CATEGORY)
            if "purchase_date" in changes:
                changes["purchase_date"] = _as_utc(changes["purchase_date"])

            asset = self.assets.update(asset_id, **changes)
            if asset is None:
                return Err(AuthErrorKind.NOT_FOUND, ASSET_NOT_FOUND)

        _logger.info(f"Updated asset {asset_id}")
        return Ok(asset)

    def delete_asset(self, owner_id: str, asset_id: str) -> Result[None, AuthErrorKind]:
        """Soft-delete one of the owner's assets."""
        with self.assets.db.transaction():
            current = self.get_asset(owner_id, asset_id)
            if isinstance(current, Err):
                return current
            self.assets.soft_delete(asset_id)

        _logger.info(f"Deleted asset {asset_id}")
        return Ok(None)

    def dashboard(self, owner_id: str) -> Dashboard:
        with self.assets.db.transaction():
            by_status = self.assets.count_by_status(owner_id)
            return Dashboard(
                recent_assets=self.assets.recent(owner_id, limit=RECENT_ASSETS),
                total_assets=sum(by_status.values()),
                assets_by_status=by_status,
                portfolio_value=self.assets.portfolio_value(owner_id),
            )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _category_accepts_assets(self, category_id: str) -> bool:
        category = self.categories.find_by_id(category_id)
        return category is not None and category.is_active
