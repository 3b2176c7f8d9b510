# inventory/models.py
"""
Asset and category models.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from auth.models import utcnow

T = TypeVar("T")

# New categories sort after the seeded ones
DEFAULT_SORT_ORDER = 999


class AssetStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    ARCHIVED = "archived"
    DAMAGED = "damaged"
    LOST = "lost"


class AssetCondition(str, Enum):
    NEW = "new"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Category:
    """
    Node in the asset category tree.

    Attributes:
        id: Unique category ID (UUID)
        name: Display name
        slug: Unique URL-safe key (lowercase letters, digits, hyphens)
        description: Optional long description
        parent_id: Parent category, None for root categories
        icon: Optional icon name
        marketplaces: Marketplace slugs where items of this category sell
        is_active: False once deactivated (categories are never hard-deleted)
        sort_order: Position among siblings
    """
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    icon: Optional[str] = None
    marketplaces: List[str] = field(default_factory=list)
    is_active: bool = True
    sort_order: int = DEFAULT_SORT_ORDER
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        name: str,
        slug: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
        icon: Optional[str] = None,
        marketplaces: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> Category:
        now = now or utcnow()
        return cls(
            id=str(uuid.uuid4()),
            name=name.strip(),
            slug=slug,
            description=description,
            parent_id=parent_id,
            icon=icon,
            marketplaces=list(marketplaces or []),
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "parentId": self.parent_id,
            "icon": self.icon,
            "marketplaces": self.marketplaces,
            "isActive": self.is_active,
            "sortOrder": self.sort_order,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class Asset:
    """
    An item owned by an account.

    Prices are kept as decimal strings with at most two fractional digits
    ("1299.99") and summed with ``Decimal``.
    """
    id: str
    owner_id: str
    category_id: str
    name: str
    purchase_price: str
    purchase_date: datetime
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    condition: Optional[AssetCondition] = None
    status: AssetStatus = AssetStatus.ACTIVE
    purchase_currency: str = "EUR"
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        owner_id: str,
        category_id: str,
        name: str,
        purchase_price: str,
        purchase_date: datetime,
        now: Optional[datetime] = None,
        **details,
    ) -> Asset:
        """Create a new active asset. ``details`` are optional descriptive fields."""
        now = now or utcnow()
        return cls(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            category_id=category_id,
            name=name.strip(),
            purchase_price=purchase_price,
            purchase_date=purchase_date,
            created_at=now,
            updated_at=now,
            **details,
        )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def price(self) -> Decimal:
        return Decimal(self.purchase_price)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "categoryId": self.category_id,
            "name": self.name,
            "description": self.description,
            "brand": self.brand,
            "model": self.model,
            "serialNumber": self.serial_number,
            "condition": self.condition.value if self.condition else None,
            "status": self.status.value,
            "purchasePrice": self.purchase_price,
            "purchaseCurrency": self.purchase_currency,
            "purchaseDate": _iso(self.purchase_date),
            "tags": self.tags,
            "notes": self.notes,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a filtered listing plus the total number of matches."""
    items: List[T]
    total: int


@dataclass(frozen=True)
class Dashboard:
    """
    Owner overview.

    Attributes:
        recent_assets: Newest assets first
        total_assets: Count of assets not deleted
        assets_by_status: Count per status, statuses with no assets omitted
        portfolio_value: Sum of purchase prices of active assets
    """
    recent_assets: List[Asset]
    total_assets: int
    assets_by_status: Dict[AssetStatus, int]
    portfolio_value: Decimal

    def to_dict(self) -> dict:
        return {
            "recentAssets": [asset.to_dict() for asset in self.recent_assets],
            "statistics": {
                "totalAssets": self.total_assets,
                "assetsByStatus": [
                    {"status": status.value, "count": count}
                    for status, count in self.assets_by_status.items()
                ],
                "portfolioValue": f"{self.portfolio_value:.2f}",
            },
        }
