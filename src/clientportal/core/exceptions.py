"""Typed errors raised by the authentication core.

Every failure carries a machine-readable ``kind`` and the HTTP status code
category it maps to, so the transport layer can render it without
inspecting messages. Messages are safe to show to end users verbatim.
"""

from typing import Any


class AuthError(Exception):
    """Base class for all classified authentication failures."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a response body."""
        body: dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailedError(AuthError):
    """Input or policy violation the user can correct."""

    kind = "validation_failed"
    status_code = 400


class InvalidOrExpiredTokenError(AuthError):
    """A ledger token is absent, already consumed, or past its expiry."""

    kind = "invalid_or_expired_token"
    status_code = 400

    def __init__(self, message: str = "Token invalid or expired") -> None:
        super().__init__(message)


class UnauthorizedError(AuthError):
    """Bad credentials, bad MFA code, or an unusable session token."""

    kind = "unauthorized"
    status_code = 401


class InvalidTokenError(UnauthorizedError):
    """A signed session token failed signature, expiry or type checks."""

    kind = "invalid_token"


class ForbiddenError(AuthError):
    """Authenticated, but the role or MFA state does not allow the action."""

    kind = "forbidden"
    status_code = 403


class NotFoundError(AuthError):
    kind = "not_found"
    status_code = 404


class ConflictError(AuthError):
    kind = "conflict"
    status_code = 409


class LockedError(AuthError):
    """Too many failed login attempts; carries the remaining lockout time."""

    kind = "locked"
    status_code = 423

    def __init__(self, minutes_remaining: int) -> None:
        super().__init__(
            f"Account locked. Try again in {minutes_remaining} minutes.",
            details={"minutes_remaining": minutes_remaining},
        )
        self.minutes_remaining = minutes_remaining


class RateLimitedError(AuthError):
    """Too many requests from one client inside the rate-limit window."""

    kind = "rate_limited"
    status_code = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            "Too many requests. Please try again later.",
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after
