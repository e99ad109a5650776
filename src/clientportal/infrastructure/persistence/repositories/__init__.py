"""Persistence repositories for database operations."""

from clientportal.infrastructure.persistence.repositories.activity_log_repository import (
    ActivityLogRepository,
)
from clientportal.infrastructure.persistence.repositories.client_account_repository import (
    ClientAccountRepository,
)
from clientportal.infrastructure.persistence.repositories.token_repository import (
    TokenRepository,
)
from clientportal.infrastructure.persistence.repositories.user_repository import (
    UserRepository,
)

__all__ = [
    "ActivityLogRepository",
    "ClientAccountRepository",
    "TokenRepository",
    "UserRepository",
]
