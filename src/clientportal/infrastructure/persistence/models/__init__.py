"""SQLAlchemy models for the client portal authentication core.

All models inherit from the Base class defined in database.py.
"""

from clientportal.infrastructure.persistence.models.activity_log import ActivityLogModel
from clientportal.infrastructure.persistence.models.client_account import ClientAccountModel
from clientportal.infrastructure.persistence.models.token import TokenModel
from clientportal.infrastructure.persistence.models.user import UserModel

__all__ = [
    "ActivityLogModel",
    "ClientAccountModel",
    "TokenModel",
    "UserModel",
]
