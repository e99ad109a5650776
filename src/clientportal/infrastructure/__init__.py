"""Infrastructure layer - External dependencies and implementations.

This layer contains:
- Database adapters (SQLAlchemy)
- API routes (FastAPI)
- Authentication primitives (Argon2, JWT)
- Email delivery and audit recording
"""

from clientportal.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    close_database,
    get_db_manager,
    get_db_session,
    init_database,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "get_db_manager",
    "get_db_session",
    "init_database",
    "close_database",
]
