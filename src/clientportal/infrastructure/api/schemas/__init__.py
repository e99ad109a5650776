"""API Schemas for request/response validation."""

from clientportal.infrastructure.api.schemas.auth_schemas import (
    ChangePasswordRequest,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MfaSetupResponse,
    PasswordRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPairResponse,
    TokenRequest,
    UserEnvelope,
    UserResponse,
)

__all__ = [
    "ChangePasswordRequest",
    "ErrorResponse",
    "ForgotPasswordRequest",
    "LoginRequest",
    "LoginResponse",
    "MfaSetupResponse",
    "PasswordRequest",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenPairResponse",
    "TokenRequest",
    "UserEnvelope",
    "UserResponse",
]
