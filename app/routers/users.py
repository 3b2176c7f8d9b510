"""
Profile and dashboard endpoints for the signed-in account.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_account_service, get_inventory_service
from app.schemas.auth import (
    AccountResponse,
    ErrorResponse,
    MessageResponse,
    ProfileUpdateRequest,
)
from app.schemas.inventory import DashboardResponse
from auth.errors import AuthError, Err
from auth.middleware import get_required_identity
from auth.models import Identity
from auth.service import AccountService
from inventory.service import InventoryService

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.get("/me", response_model=AccountResponse)
def get_profile(
    identity: Identity = Depends(get_required_identity),
    service: AccountService = Depends(get_account_service),
):
    result = service.get_account(identity.account_id)
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {"success": True, "user": result.value.to_dict()}


@router.put("/me", response_model=AccountResponse)
def update_profile(
    body: ProfileUpdateRequest,
    identity: Identity = Depends(get_required_identity),
    service: AccountService = Depends(get_account_service),
):
    """Update name and avatar. Omitted fields are left unchanged."""
    result = service.update_profile(
        identity.account_id,
        first_name=body.first_name,
        last_name=body.last_name,
        avatar=body.avatar,
    )
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {"success": True, "user": result.value.to_dict()}


@router.delete("/me", response_model=MessageResponse)
def deactivate_account(
    identity: Identity = Depends(get_required_identity),
    service: AccountService = Depends(get_account_service),
):
    """Deactivate the account and sign out all of its sessions."""
    result = service.deactivate(identity.account_id)
    if isinstance(result, Err):
        raise AuthError.from_err(result)
    return {"success": True, "message": "Account deactivated"}


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    identity: Identity = Depends(get_required_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    """Newest assets, counts per status and the value of active assets."""
    return {"success": True, "data": service.dashboard(identity.account_id).to_dict()}
