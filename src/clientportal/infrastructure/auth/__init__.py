"""Authentication infrastructure components.

This module provides password hashing and the JWT session issuer.
"""

from clientportal.infrastructure.auth.jwt_service import AccessClaims, JWTService
from clientportal.infrastructure.auth.password_hasher import (
    dummy_password_hash,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "AccessClaims",
    "JWTService",
    "dummy_password_hash",
    "hash_password",
    "needs_rehash",
    "verify_password",
]
