"""
Category endpoints.

Reads are public. Inactive categories are listed only for professional
accounts; changes to the tree require a professional account.
"""
import re
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_inventory_service
from app.schemas.auth import ErrorResponse, MessageResponse
from app.schemas.inventory import (
    UUID_PATTERN,
    CategoryCreateRequest,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdateRequest,
)
from auth.errors import AuthError, AuthErrorKind, Err
from auth.middleware import get_optional_identity, require_account_kind
from auth.models import AccountKind, Identity
from inventory.service import InventoryService

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)

require_professional = require_account_kind(AccountKind.PROFESSIONAL)

SORT_FIELDS = {
    "name": "name",
    "createdAt": "created_at",
    "sortOrder": "sort_order",
}

ACTIVE_FILTERS = {"true": True, "false": False, "all": None}


def _check_category_id(category_id: str) -> str:
    if not re.match(UUID_PATTERN, category_id):
        raise AuthError(AuthErrorKind.VALIDATION_FAILED, "Invalid category ID")
    return category_id


@router.get("", response_model=CategoryListResponse)
def list_categories(
    parent: Literal["root", "all"] = Query(default="all", description="root: top-level categories only"),
    active: Literal["true", "false", "all"] = Query(default="true"),
    sort_by: Literal["name", "createdAt", "sortOrder"] = Query(default="sortOrder", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="asc", alias="sortOrder"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    """List categories. Only professional accounts may see inactive ones."""
    is_professional = identity is not None and identity.kind == AccountKind.PROFESSIONAL
    active_filter = ACTIVE_FILTERS[active] if is_professional else True

    result = service.list_categories(
        roots_only=parent == "root",
        active=active_filter,
        sort_by=SORT_FIELDS[sort_by],
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return {
        "success": True,
        "data": [category.to_dict() for category in result.items],
        "pagination": {
            "offset": offset,
            "limit": limit,
            "total": result.total,
            "hasMore": offset + len(result.items) < result.total,
        },
    }


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: str,
    service: InventoryService = Depends(get_inventory_service),
):
    result = service.get_category(_check_category_id(category_id))
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {"success": True, "data": result.value.to_dict()}


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(
    body: CategoryCreateRequest,
    identity: Identity = Depends(require_professional),
    service: InventoryService = Depends(get_inventory_service),
):
    result = service.create_category(**body.model_dump())
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {
        "success": True,
        "message": "Category created successfully",
        "data": result.value.to_dict(),
    }


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: str,
    body: CategoryUpdateRequest,
    identity: Identity = Depends(require_professional),
    service: InventoryService = Depends(get_inventory_service),
):
    """Partial update. ``parentId: null`` moves the category to the root."""
    result = service.update_category(
        _check_category_id(category_id),
        **body.model_dump(exclude_unset=True),
    )
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {
        "success": True,
        "message": "Category updated successfully",
        "data": result.value.to_dict(),
    }


@router.delete("/{category_id}", response_model=MessageResponse)
def delete_category(
    category_id: str,
    identity: Identity = Depends(require_professional),
    service: InventoryService = Depends(get_inventory_service),
):
    """Deactivate a category. Refused while live assets are filed under it."""
    result = service.delete_category(_check_category_id(category_id))
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {"success": True, "message": "Category deleted successfully"}
