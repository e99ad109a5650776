"""Pydantic schemas for authentication endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from clientportal.domain.entities.user import UserProfile


class CamelModel(BaseModel):
    """Base model that accepts and renders camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    """Request body for self-service registration.

    Self-registered users always get the ``client`` role.
    """

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")
    first_name: str = Field(..., min_length=1, max_length=100, description="Given name")
    last_name: str = Field(..., min_length=1, max_length=100, description="Family name")
    client_name: str | None = Field(
        None,
        max_length=255,
        description="Client organization name (defaults to the user's full name)",
    )


class LoginRequest(CamelModel):
    """Request body for login."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")
    mfa_code: str | None = Field(None, description="Current TOTP code when MFA is enabled")


class RefreshRequest(CamelModel):
    """Request body for token refresh and logout (cookie takes precedence)."""

    refresh_token: str | None = Field(None, description="Refresh token")


class TokenRequest(CamelModel):
    """Request body carrying a single token value."""

    token: str = Field(..., min_length=1, description="Token value")


class ForgotPasswordRequest(CamelModel):
    email: EmailStr = Field(..., description="Email address of the account")


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1, description="Password reset token")
    password: str = Field(..., min_length=1, description="New password")


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., min_length=1, description="New password")


class PasswordRequest(CamelModel):
    password: str = Field(..., min_length=1, description="Current password")


class UserResponse(CamelModel):
    """User information in auth responses. Never includes secrets."""

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    client_account_id: str | None = None
    is_email_verified: bool
    mfa_enabled: bool
    last_login_at: datetime | None = None
    password_changed_at: datetime | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserResponse":
        return cls(**profile.to_dict())


class UserEnvelope(CamelModel):
    user: UserResponse


class LoginResponse(CamelModel):
    """Either ``{"mfaRequired": true}`` or a full session."""

    mfa_required: bool | None = None
    token: str | None = None
    refresh_token: str | None = None
    user: UserResponse | None = None


class TokenPairResponse(CamelModel):
    token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class MfaSetupResponse(CamelModel):
    secret: str = Field(..., description="Base32 TOTP secret")
    otpauth: str = Field(..., description="otpauth:// URI for authenticator apps")


class ErrorResponse(BaseModel):
    """Body of every classified error response."""

    error: str = Field(..., description="Machine-readable error kind")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Additional context")
