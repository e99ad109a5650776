"""Authentication API routes.

Thin HTTP layer over ``AuthService``: request parsing, cookie handling
and response shaping. Failures are ``AuthError`` subclasses rendered by
the application's exception handler.
"""

from fastapi import APIRouter, Depends, Request, Response, status

from clientportal.core.config import get_settings
from clientportal.core.exceptions import UnauthorizedError
from clientportal.core.logging import get_logger
from clientportal.infrastructure.api.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    AuthenticatedUser,
    AuthServiceDep,
)
from clientportal.infrastructure.api.rate_limit import limit_login
from clientportal.infrastructure.api.schemas import (
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

logger = get_logger(__name__)

router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    401: {"model": ErrorResponse, "description": "Not authenticated"},
}


def set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Set httpOnly session cookies for browser clients."""
    settings = get_settings()
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        access_token,
        max_age=int(settings.access_token_ttl.total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        refresh_token,
        max_age=int(settings.refresh_token_ttl.total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)


def _refresh_token_from(request: Request, payload: RefreshRequest | None) -> str | None:
    return request.cookies.get(REFRESH_TOKEN_COOKIE) or (payload.refresh_token if payload else None)


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=UserEnvelope,
    responses={
        400: _ERRORS[400],
        409: {"model": ErrorResponse, "description": "Email already in use"},
    },
)
async def register(payload: RegisterRequest, auth_service: AuthServiceDep) -> UserEnvelope:
    """Register a client user and send the verification email."""
    profile = await auth_service.register(
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        client_name=payload.client_name,
    )
    return UserEnvelope(user=UserResponse.from_profile(profile))


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(limit_login)],
    responses={
        401: _ERRORS[401],
        423: {"model": ErrorResponse, "description": "Account locked"},
        429: {"model": ErrorResponse, "description": "Too many login attempts"},
    },
)
async def login(
    payload: LoginRequest, response: Response, auth_service: AuthServiceDep
) -> LoginResponse:
    """Log in with email, password and, when enabled, a TOTP code.

    Returns ``{"mfaRequired": true}`` when a TOTP code is needed.
    """
    result = await auth_service.login(payload.email, payload.password, payload.mfa_code)
    if result.mfa_required:
        return LoginResponse(mfa_required=True)

    set_auth_cookies(response, result.access_token, result.refresh_token)
    return LoginResponse(
        token=result.access_token,
        refresh_token=result.refresh_token,
        user=UserResponse.from_profile(result.user),
    )


@router.post("/refresh", response_model=TokenPairResponse, responses={401: _ERRORS[401]})
async def refresh(
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    payload: RefreshRequest | None = None,
) -> TokenPairResponse:
    """Rotate the refresh token from the cookie or the request body."""
    raw_refresh_token = _refresh_token_from(request, payload)
    if not raw_refresh_token:
        raise UnauthorizedError("Refresh token missing")

    pair = await auth_service.refresh_tokens(raw_refresh_token)
    set_auth_cookies(response, pair.access_token, pair.refresh_token)
    return TokenPairResponse(token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, responses={401: _ERRORS[401]})
async def logout(
    request: Request,
    current_user: AuthenticatedUser,
    auth_service: AuthServiceDep,
    payload: RefreshRequest | None = None,
) -> Response:
    """End this session, or every session when no refresh token is presented."""
    await auth_service.logout(current_user.user_id, _refresh_token_from(request, payload))
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_auth_cookies(response)
    return response


@router.post("/verify-email", response_model=UserEnvelope, responses={400: _ERRORS[400]})
async def verify_email(payload: TokenRequest, auth_service: AuthServiceDep) -> UserEnvelope:
    profile = await auth_service.verify_email(payload.token)
    return UserEnvelope(user=UserResponse.from_profile(profile))


@router.post(
    "/resend-verification",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={400: _ERRORS[400], 401: _ERRORS[401]},
)
async def resend_verification(
    current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> Response:
    await auth_service.resend_email_verification(current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/password/forgot", status_code=status.HTTP_204_NO_CONTENT)
async def forgot_password(
    payload: ForgotPasswordRequest, auth_service: AuthServiceDep
) -> Response:
    """Request a password reset link.

    Always answers 204 so the response does not reveal whether the email
    is registered.
    """
    await auth_service.initiate_password_reset(payload.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/password/reset", response_model=UserEnvelope, responses={400: _ERRORS[400]})
async def reset_password(
    payload: ResetPasswordRequest, auth_service: AuthServiceDep
) -> UserEnvelope:
    profile = await auth_service.reset_password(payload.token, payload.password)
    return UserEnvelope(user=UserResponse.from_profile(profile))


@router.post("/password/change", response_model=UserEnvelope, responses=_ERRORS)
async def change_password(
    payload: ChangePasswordRequest,
    current_user: AuthenticatedUser,
    auth_service: AuthServiceDep,
) -> UserEnvelope:
    profile = await auth_service.change_password(
        current_user.user_id, payload.current_password, payload.new_password
    )
    return UserEnvelope(user=UserResponse.from_profile(profile))


@router.post("/mfa/setup", response_model=MfaSetupResponse, responses={401: _ERRORS[401]})
async def mfa_setup(current_user: AuthenticatedUser, auth_service: AuthServiceDep) -> MfaSetupResponse:
    """Start TOTP enrollment; the secret is shown once."""
    setup = await auth_service.initiate_mfa_setup(current_user.user_id)
    return MfaSetupResponse(secret=setup.secret, otpauth=setup.otpauth_url)


@router.post("/mfa/verify", response_model=UserEnvelope, responses=_ERRORS)
async def mfa_verify(
    payload: TokenRequest, current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> UserEnvelope:
    """Confirm TOTP enrollment with a code from the authenticator app."""
    profile = await auth_service.confirm_mfa_setup(current_user.user_id, payload.token)
    return UserEnvelope(user=UserResponse.from_profile(profile))


@router.post("/mfa/disable", status_code=status.HTTP_204_NO_CONTENT, responses=_ERRORS)
async def mfa_disable(
    payload: PasswordRequest, current_user: AuthenticatedUser, auth_service: AuthServiceDep
) -> Response:
    await auth_service.disable_mfa(current_user.user_id, payload.password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserEnvelope, responses={401: _ERRORS[401]})
async def me(current_user: AuthenticatedUser, auth_service: AuthServiceDep) -> UserEnvelope:
    """Profile of the authenticated user."""
    profile = await auth_service.get_profile(current_user.user_id)
    return UserEnvelope(user=UserResponse.from_profile(profile))
