"""JWT session issuer.

Mints and verifies the access/refresh token pair handed to a client after
login. Access tokens are short-lived and self-verifying; refresh tokens are
long-lived, signed with a separate secret, and additionally recorded by
hash in the token ledger so they can be rotated and revoked.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from clientportal.core.config import Settings, get_settings
from clientportal.core.exceptions import InvalidTokenError


@dataclass(frozen=True)
class AccessClaims:
    """Decoded access-token claims."""

    subject_id: str
    email: str
    role: str
    mfa_verified: bool = False


class JWTService:
    """Service for creating and validating session tokens."""

    ALGORITHM = "HS256"
    ACCESS_TYPE = "access"
    REFRESH_TYPE = "refresh"

    _WRONG_TYPE_MESSAGES = {
        ACCESS_TYPE: "Not an access token",
        REFRESH_TYPE: "Not a refresh token",
    }

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the JWT service.

        Args:
            settings: Settings holding the two signing secrets and lifetimes.
                      If not provided, uses the cached application settings.
        """
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    @property
    def access_ttl(self) -> timedelta:
        return self.settings.access_token_ttl

    @property
    def refresh_ttl(self) -> timedelta:
        return self.settings.refresh_token_ttl

    def issue_access_token(
        self,
        subject_id: str,
        email: str,
        role: str,
        mfa_verified: bool | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create an access token.

        Args:
            subject_id: The user's unique identifier.
            email: The user's email address.
            role: The user's role name.
            mfa_verified: Embedded as ``mfaVerified`` only when truthy.
            expires_delta: Custom expiration time. Defaults to config value.

        Returns:
            Encoded JWT access token.
        """
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": subject_id,
            "email": email,
            "role": role,
            "type": self.ACCESS_TYPE,
            "iat": now,
            "exp": now + (expires_delta or self.access_ttl),
        }
        if mfa_verified:
            payload["mfaVerified"] = True

        return jwt.encode(payload, self.settings.jwt_access_secret, algorithm=self.ALGORITHM)

    def issue_refresh_token(
        self,
        subject_id: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create a refresh token.

        Each token carries a random ``jti`` so two tokens minted for the same
        user in the same second never collide in the ledger.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": subject_id,
            "type": self.REFRESH_TYPE,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": now + (expires_delta or self.refresh_ttl),
        }
        return jwt.encode(payload, self.settings.jwt_refresh_secret, algorithm=self.ALGORITHM)

    def _decode(self, token: str, secret: str, expected_type: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.ALGORITHM],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

        if payload.get("type") != expected_type:
            raise InvalidTokenError(self._WRONG_TYPE_MESSAGES[expected_type])
        return payload

    def verify_access(self, token: str) -> AccessClaims:
        """Decode and validate an access token.

        Raises:
            InvalidTokenError: On a bad signature, expiry, or wrong token type.
        """
        payload = self._decode(token, self.settings.jwt_access_secret, self.ACCESS_TYPE)
        return AccessClaims(
            subject_id=payload["sub"],
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            mfa_verified=bool(payload.get("mfaVerified", False)),
        )

    def verify_refresh(self, token: str) -> str:
        """Decode and validate a refresh token.

        Returns:
            The subject (user ID) of the token.

        Raises:
            InvalidTokenError: On a bad signature, expiry, or wrong token type.
        """
        payload = self._decode(token, self.settings.jwt_refresh_secret, self.REFRESH_TYPE)
        return payload["sub"]
