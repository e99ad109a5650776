"""Ledger token entity.

Stores information about single-use and renewable tokens handed to users:
email verification links, password reset links, and refresh tokens.
Only a SHA-256 hash of the value given to the user is ever persisted.
"""

import hashlib
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

# 24 random bytes rendered as 48 hex characters
RAW_TOKEN_BYTES = 24


class TokenType(str, Enum):
    """Purpose of a ledger token."""

    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"
    REFRESH_TOKEN = "refresh_token"

    @property
    def is_single_use(self) -> bool:
        """Single-use tokens are marked consumed; refresh tokens are deleted instead."""
        return self is not TokenType.REFRESH_TOKEN


def hash_token(raw_token: str) -> str:
    """Hash a raw token value using SHA-256.

    Args:
        raw_token: The value given to the user.

    Returns:
        SHA-256 hex digest of the token.
    """
    return hashlib.sha256(raw_token.encode()).hexdigest()


def generate_raw_token() -> str:
    """Generate an opaque, cryptographically random token value."""
    return secrets.token_hex(RAW_TOKEN_BYTES)


@dataclass
class LedgerToken:
    """Ledger token entity.

    Attributes:
        id: Unique identifier (UUID string).
        user_id: ID of the user this token belongs to.
        token_hash: SHA-256 hash of the raw token.
        type: What the token may be used for.
        expires_at: When the token expires.
        created_at: When the token was created.
        consumed_at: When a single-use token was used (None if unused).
    """

    user_id: str
    token_hash: str
    type: TokenType
    expires_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    consumed_at: datetime | None = None

    @classmethod
    def for_value(
        cls, user_id: str, raw_token: str, token_type: TokenType, ttl: timedelta
    ) -> "LedgerToken":
        """Build the ledger entry for a raw value without keeping the value."""
        now = datetime.now(timezone.utc)
        return cls(
            user_id=user_id,
            token_hash=hash_token(raw_token),
            type=token_type,
            expires_at=now + ttl,
            created_at=now,
        )

    @classmethod
    def generate(
        cls, user_id: str, token_type: TokenType, ttl: timedelta
    ) -> tuple["LedgerToken", str]:
        """Generate a new random token and its ledger entry.

        Returns:
            A tuple of (LedgerToken entity, raw_token_string). The raw string
            exists only in this return value.
        """
        raw_token = generate_raw_token()
        return cls.for_value(user_id, raw_token, token_type, ttl), raw_token

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now

    def is_valid(self, now: datetime | None = None) -> bool:
        """Check if the token is usable (not expired and not consumed)."""
        return self.consumed_at is None and not self.is_expired(now)
