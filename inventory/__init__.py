# inventory/__init__.py
"""
Inventory module.

Provides:
- Asset and category models
- Category store (tree of slugs, soft deactivation)
- Asset store (owner-scoped search, pagination, soft delete)
- Inventory service with ownership checks and the owner dashboard
"""

from inventory.assets import AssetStore
from inventory.categories import CategoryStore
from inventory.models import Asset, AssetCondition, AssetStatus, Category, Page
from inventory.service import InventoryService

__all__ = [
    "Asset",
    "AssetCondition",
    "AssetStatus",
    "AssetStore",
    "Category",
    "CategoryStore",
    "InventoryService",
    "Page",
]
