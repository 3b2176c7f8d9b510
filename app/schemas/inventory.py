# app/schemas/inventory.py
"""
Pydantic schemas for the asset, category and dashboard API.

Python field names match the store columns, so a validated body can be
passed on with ``model_dump(exclude_unset=True)``.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.auth import CamelModel
from inventory.models import AssetCondition, AssetStatus

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
PRICE_PATTERN = r"^\d+(\.\d{1,2})?$"
SLUG_PATTERN = r"^[a-z0-9-]+$"


# =============================================================================
# Request Schemas
# =============================================================================


class AssetCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    serial_number: Optional[str] = Field(default=None, alias="serialNumber", max_length=100)
    category_id: str = Field(alias="categoryId", pattern=UUID_PATTERN)
    purchase_price: str = Field(alias="purchasePrice", pattern=PRICE_PATTERN)
    purchase_currency: str = Field(default="EUR", alias="purchaseCurrency", min_length=3, max_length=3)
    purchase_date: datetime = Field(alias="purchaseDate")
    condition: Optional[AssetCondition] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class AssetUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    serial_number: Optional[str] = Field(default=None, alias="serialNumber", max_length=100)
    category_id: Optional[str] = Field(default=None, alias="categoryId", pattern=UUID_PATTERN)
    purchase_price: Optional[str] = Field(default=None, alias="purchasePrice", pattern=PRICE_PATTERN)
    purchase_currency: Optional[str] = Field(default=None, alias="purchaseCurrency", min_length=3, max_length=3)
    purchase_date: Optional[datetime] = Field(default=None, alias="purchaseDate")
    condition: Optional[AssetCondition] = None
    status: Optional[AssetStatus] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class CategoryCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(default=None, max_length=1000)
    parent_id: Optional[str] = Field(default=None, alias="parentId", pattern=UUID_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=100)
    marketplaces: List[str] = Field(default_factory=list)


class CategoryUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(default=None, max_length=1000)
    parent_id: Optional[str] = Field(default=None, alias="parentId", pattern=UUID_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=100)
    marketplaces: Optional[List[str]] = None
    sort_order: Optional[int] = Field(default=None, alias="sortOrder", ge=0)


# =============================================================================
# Response Schemas
# =============================================================================


class AssetOut(BaseModel):
    id: str
    ownerId: str
    categoryId: str
    name: str
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serialNumber: Optional[str] = None
    condition: Optional[AssetCondition] = None
    status: AssetStatus
    purchasePrice: str
    purchaseCurrency: str
    purchaseDate: str
    tags: List[str] = []
    notes: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class CategoryOut(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    parentId: Optional[str] = None
    icon: Optional[str] = None
    marketplaces: List[str] = []
    isActive: bool
    sortOrder: int
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class PagePagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrev: bool


class OffsetPagination(BaseModel):
    offset: int
    limit: int
    total: int
    hasMore: bool


class AssetResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: AssetOut


class AssetListResponse(BaseModel):
    success: bool = True
    data: List[AssetOut]
    pagination: PagePagination


class CategoryResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: CategoryOut


class CategoryListResponse(BaseModel):
    success: bool = True
    data: List[CategoryOut]
    pagination: OffsetPagination


class StatusCount(BaseModel):
    status: AssetStatus
    count: int


class DashboardStatistics(BaseModel):
    totalAssets: int
    assetsByStatus: List[StatusCount]
    portfolioValue: str


class DashboardOut(BaseModel):
    recentAssets: List[AssetOut]
    statistics: DashboardStatistics


class DashboardResponse(BaseModel):
    success: bool = True
    data: DashboardOut
