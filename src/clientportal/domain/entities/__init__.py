"""Domain entities for the client portal authentication core."""

from clientportal.domain.entities.role import Role
from clientportal.domain.entities.token import LedgerToken, TokenType, hash_token
from clientportal.domain.entities.user import UserProfile

__all__ = [
    "LedgerToken",
    "Role",
    "TokenType",
    "UserProfile",
    "hash_token",
]
