# app/schemas/auth.py
"""
Pydantic schemas for the auth and profile API.

Field names on the wire are camelCase (firstName, refreshToken, ...).
Password strength is checked by the service, not here, so that weak
passwords get the WeakPassword error kind.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from auth.models import AccountKind

MAX_PASSWORD_LENGTH = 128
MAX_NAME_LENGTH = 100


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Request Schemas
# =============================================================================


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LENGTH)
    first_name: str = Field(alias="firstName", min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: str = Field(alias="lastName", min_length=1, max_length=MAX_NAME_LENGTH)
    kind: AccountKind = AccountKind.PERSONAL


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LENGTH)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(alias="refreshToken", min_length=1)


class PasswordResetRequest(CamelModel):
    email: EmailStr


class PasswordResetConfirm(CamelModel):
    token: str = Field(min_length=1)
    new_password: str = Field(alias="newPassword", min_length=1, max_length=MAX_PASSWORD_LENGTH)


class ProfileUpdateRequest(CamelModel):
    first_name: Optional[str] = Field(default=None, alias="firstName", min_length=1, max_length=MAX_NAME_LENGTH)
    last_name: Optional[str] = Field(default=None, alias="lastName", min_length=1, max_length=MAX_NAME_LENGTH)
    avatar: Optional[str] = Field(default=None, max_length=2048)


# =============================================================================
# Response Schemas
# =============================================================================


class TokensOut(BaseModel):
    accessToken: str
    refreshToken: str


class AccountOut(BaseModel):
    id: str
    email: str
    firstName: str
    lastName: str
    avatar: Optional[str] = None
    kind: AccountKind
    emailVerified: bool
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    lastLoginAt: Optional[str] = None


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    user: AccountOut
    tokens: TokensOut


class TokensResponse(BaseModel):
    success: bool = True
    tokens: TokensOut


class AccountResponse(BaseModel):
    success: bool = True
    user: AccountOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
