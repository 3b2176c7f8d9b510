"""
Account lifecycle endpoints: register, login, logout, refresh,
password reset and the current account.

Service results are translated here: ``Ok`` becomes the success body,
``Err`` becomes the structured error body via ``AuthError``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_account_service, get_client_device
from app.rate_limiter import enforce_auth_rate_limit
from app.schemas.auth import (
    AccountResponse,
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    RegisterRequest,
    TokensResponse,
)
from auth.errors import AuthError, AuthErrorKind, Err
from auth.middleware import extract_bearer_token, get_required_identity
from auth.models import Identity
from auth.service import AccountService

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)

RESET_REQUEST_MESSAGE = "If the email exists, a password reset link has been sent"


def _auth_body(message: str, session) -> dict:
    return {
        "success": True,
        "message": message,
        "user": session.account.to_dict(),
        "tokens": session.tokens.to_dict(),
    }


# =============================================================================
# Routes
# =============================================================================

@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
def register(
    body: RegisterRequest,
    device: Optional[dict] = Depends(get_client_device),
    service: AccountService = Depends(get_account_service),
):
    """Register a new account and return it with a token pair."""
    result = service.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        kind=body.kind,
        device=device,
    )
    if isinstance(result, Err):
        raise AuthError.from_err(result)

    return _auth_body("Account registered successfully", result.value)


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
def login(
    body: LoginRequest,
    device: Optional[dict] = Depends(get_client_device),
    service: AccountService = Depends(get_account_service),
):
    """Login with email/password."""
    result = service.login(email=body.email, password=body.password, device=device)
    if isinstance(result, Err):
        raise AuthError.from_err(result)

    return _auth_body("Login successful", result.value)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    service: AccountService = Depends(get_account_service),
):
    """Close the session behind the presented bearer token. Never fails."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        return {"success": True, "message": "Already logged out"}

    service.logout(token)
    return {"success": True, "message": "Logout successful"}


@router.post("/refresh-token", response_model=TokensResponse)
def refresh_token(
    body: RefreshRequest,
    device: Optional[dict] = Depends(get_client_device),
    service: AccountService = Depends(get_account_service),
):
    """Exchange a refresh token for a new token pair."""
    result = service.refresh(body.refresh_token, device=device)
    if isinstance(result, Err):
        raise AuthError.from_err(result, status_code=401)

    return {"success": True, "tokens": result.value.to_dict()}


@router.post(
    "/password-reset-request",
    response_model=MessageResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
def password_reset_request(
    body: PasswordResetRequest,
    service: AccountService = Depends(get_account_service),
):
    """Start a password reset. The answer never reveals whether the email exists."""
    service.request_password_reset(body.email)
    return {"success": True, "message": RESET_REQUEST_MESSAGE}


@router.post(
    "/password-reset",
    response_model=MessageResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
def password_reset(
    body: PasswordResetConfirm,
    service: AccountService = Depends(get_account_service),
):
    """Set a new password with a reset ticket; signs out every session."""
    result = service.reset_password(body.token, body.new_password)
    if isinstance(result, Err):
        raise AuthError.from_err(result)

    return {"success": True, "message": "Password reset successful"}


@router.get("/me", response_model=AccountResponse)
def get_me(
    identity: Identity = Depends(get_required_identity),
    service: AccountService = Depends(get_account_service),
):
    """Get the current account."""
    result = service.get_account(identity.account_id)
    if isinstance(result, Err):
        raise AuthError(AuthErrorKind.ACCOUNT_INACTIVE)

    return {"success": True, "user": result.value.to_dict()}
