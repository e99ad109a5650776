"""FastAPI dependencies for authentication and authorization.

Provides dependencies for extracting and validating access tokens from
requests, role and MFA guards, and construction of the request-scoped
auth service.
"""

from dataclasses import dataclass
from typing import Annotated, Callable

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from clientportal.core.config import get_settings
from clientportal.core.exceptions import ForbiddenError, UnauthorizedError
from clientportal.core.logging import get_logger
from clientportal.domain.entities.role import Role
from clientportal.domain.services.auth_service import AuthService
from clientportal.domain.services.broadcaster import Broadcaster, NullBroadcaster
from clientportal.infrastructure.auth.jwt_service import JWTService
from clientportal.infrastructure.persistence.database import get_db_session
from clientportal.infrastructure.services.email_service import EmailService

logger = get_logger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


@dataclass
class CurrentUser:
    """Represents the current authenticated user context.

    Extracted from a valid access token without a database hit.
    """

    user_id: str
    email: str
    role: Role
    mfa_verified: bool = False


def get_jwt_service(request: Request) -> JWTService:
    """Get the JWT service from app state."""
    if not hasattr(request.app.state, "jwt_service"):
        request.app.state.jwt_service = JWTService()
    return request.app.state.jwt_service


def get_broadcaster(request: Request) -> Broadcaster:
    """Get the real-time broadcaster from app state."""
    if not hasattr(request.app.state, "broadcaster"):
        request.app.state.broadcaster = NullBroadcaster()
    return request.app.state.broadcaster


def get_email_service(request: Request) -> EmailService:
    """Get the email service from app state."""
    if not hasattr(request.app.state, "email_service"):
        request.app.state.email_service = EmailService(get_settings())
    return request.app.state.email_service


def _extract_token(request: Request, authorization: str | None) -> str | None:
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
        logger.info("Authentication failed: invalid Authorization header format")
        raise UnauthorizedError("Invalid Authorization header")
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


async def get_current_user(
    request: Request,
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> CurrentUser:
    """Authenticate the request from a Bearer header or the access token cookie.

    Raises:
        UnauthorizedError: If no token is present.
        InvalidTokenError: If the token is invalid, expired, or not an access token.
    """
    token = _extract_token(request, authorization)
    if not token:
        logger.info("Authentication failed: no access token")
        raise UnauthorizedError("Unauthorized")

    claims = jwt_service.verify_access(token)
    try:
        role = Role(claims.role)
    except ValueError:
        logger.warning("Authentication failed: unknown role claim", role=claims.role)
        raise UnauthorizedError("Invalid token")

    return CurrentUser(
        user_id=claims.subject_id,
        email=claims.email,
        role=role,
        mfa_verified=claims.mfa_verified,
    )


# Type alias for dependency injection
AuthenticatedUser = Annotated[CurrentUser, Depends(get_current_user)]


def require_roles(*roles: Role | str) -> Callable:
    """Build a dependency that admits only the given roles.

    Example:
        ``Depends(require_roles(Role.ADMIN, Role.MANAGER))``
    """
    allowed = frozenset(Role(r) for r in roles)

    async def dependency(current_user: AuthenticatedUser) -> CurrentUser:
        if current_user.role not in allowed:
            logger.info(
                "Role check failed",
                user_id=current_user.user_id,
                role=current_user.role.value,
            )
            raise ForbiddenError("Forbidden")
        return current_user

    return dependency


async def require_mfa(current_user: AuthenticatedUser) -> CurrentUser:
    """Admit only sessions that passed a TOTP check at login."""
    if not current_user.mfa_verified:
        raise ForbiddenError("MFA verification required")
    return current_user


async def require_user_manager(current_user: AuthenticatedUser) -> CurrentUser:
    """Admit roles allowed to manage users."""
    if not current_user.role.can_manage_users:
        raise ForbiddenError("Forbidden")
    return current_user


async def require_client_manager(current_user: AuthenticatedUser) -> CurrentUser:
    """Admit roles allowed to manage client accounts."""
    if not current_user.role.can_manage_clients:
        raise ForbiddenError("Forbidden")
    return current_user


MfaVerifiedUser = Annotated[CurrentUser, Depends(require_mfa)]
UserManager = Annotated[CurrentUser, Depends(require_user_manager)]
ClientManager = Annotated[CurrentUser, Depends(require_client_manager)]


async def get_auth_service(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
    broadcaster: Annotated[Broadcaster, Depends(get_broadcaster)],
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
) -> AuthService:
    """Build the auth service for this request."""
    return AuthService(
        session,
        settings=get_settings(),
        email_service=email_service,
        jwt_service=jwt_service,
        broadcaster=broadcaster,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
