"""Password hashing utility using Argon2.

Provides salted, adaptive password hashing and verification using the
Argon2id algorithm. Cost parameters come from configuration so they can be
raised in production without code changes.
"""

from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from clientportal.core.config import get_settings


@lru_cache
def _get_hasher() -> PasswordHasher:
    settings = get_settings()
    return PasswordHasher(
        time_cost=settings.password_hash_time_cost,
        memory_cost=settings.password_hash_memory_cost,
    )


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Args:
        password: The plaintext password to hash.

    Returns:
        The hashed password string (salt and parameters embedded).
    """
    return _get_hasher().hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a hash.

    Uses constant-time comparison to prevent timing attacks.

    Args:
        password: The plaintext password to verify.
        hashed: The hashed password to verify against.

    Returns:
        True if the password matches, False otherwise.
    """
    try:
        return _get_hasher().verify(hashed, password)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError):
        return False


def needs_rehash(hashed: str) -> bool:
    """Check if a hash was made with weaker parameters than currently configured."""
    return _get_hasher().check_needs_rehash(hashed)


@lru_cache
def dummy_password_hash() -> str:
    """Hash verified against when no user matches, so both branches cost the same."""
    return hash_password("dummy-password-for-timing-equalization")
