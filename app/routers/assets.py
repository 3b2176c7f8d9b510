"""
Asset endpoints. Every route acts on the signed-in account's own assets.
"""
import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_inventory_service
from app.schemas.auth import ErrorResponse, MessageResponse
from app.schemas.inventory import (
    AssetCreateRequest,
    AssetListResponse,
    AssetResponse,
    AssetUpdateRequest,
)
from auth.errors import AuthError, Err
from auth.middleware import get_required_identity
from auth.models import Identity
from inventory.models import AssetCondition, AssetStatus
from inventory.service import InventoryService

router = APIRouter(
    prefix="/assets",
    tags=["assets"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)

SORT_FIELDS = {
    "name": "name",
    "purchaseDate": "purchase_date",
    "createdAt": "created_at",
    "purchasePrice": "purchase_price",
}


@router.get("", response_model=AssetListResponse)
def search_assets(
    query: Optional[str] = Query(default=None, max_length=255, description="Substring of name or description"),
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    status: Optional[AssetStatus] = Query(default=None),
    condition: Optional[AssetCondition] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: Literal["name", "purchaseDate", "createdAt", "purchasePrice"] = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    identity: Identity = Depends(get_required_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    """Search, filter and page through the caller's assets."""
    result = service.search_assets(
        identity.account_id,
        query=query,
        category_id=category_id,
        status=status,
        condition=condition,
        page=page,
        limit=limit,
        sort_by=SORT_FIELDS[sort_by],
        sort_order=sort_order,
    )
    total_pages = math.ceil(result.total / limit)
    return {
        "success": True,
        "data": [asset.to_dict() for asset in result.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": result.total,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
    }


@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(
    asset_id: str,
    identity: Identity = Depends(get_required_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    result = service.get_asset(identity.account_id, asset_id)
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {"success": True, "data": result.value.to_dict()}


@router.post("", response_model=AssetResponse, status_code=201)
def create_asset(
    body: AssetCreateRequest,
    identity: Identity = Depends(get_required_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    result = service.create_asset(identity.account_id, **body.model_dump())
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {
        "success": True,
        "message": "Asset created successfully",
        "data": result.value.to_dict(),
    }


@router.put("/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: str,
    body: AssetUpdateRequest,
    identity: Identity = Depends(get_required_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    """Partial update. Omitted fields are left unchanged."""
    result = service.update_asset(
        identity.account_id,
        asset_id,
        **body.model_dump(exclude_unset=True),
    )
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {
        "success": True,
        "message": "Asset updated successfully",
        "data": result.value.to_dict(),
    }


@router.delete("/{asset_id}", response_model=MessageResponse)
def delete_asset(
    asset_id: str,
    identity: Identity = Depends(get_required_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    """Soft delete: the asset disappears from every listing."""
    result = service.delete_asset(identity.account_id, asset_id)
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {"success": True, "message": "Asset deleted successfully"}
