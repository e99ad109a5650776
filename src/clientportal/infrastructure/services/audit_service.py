"""Audit sink for security-relevant actions.

Appends rows to the activity log. Recording is best-effort: it runs after
the operation it describes has committed, and a failure here is logged
rather than propagated.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clientportal.core.logging import get_logger
from clientportal.infrastructure.persistence.models.activity_log import ActivityLogModel
from clientportal.infrastructure.persistence.repositories.activity_log_repository import (
    ActivityLogRepository,
)

logger = get_logger(__name__)


class AuditService:
    """Records activity log entries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the audit service.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session
        self.repository = ActivityLogRepository(session)

    async def record(
        self,
        action: str,
        user_id: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> bool:
        """Append one activity log entry and commit it.

        Args:
            action: Action name, e.g. ``user_logged_in``.
            user_id: Acting or affected user.
            entity_type: Kind of entity the action touched.
            entity_id: ID of that entity.
            metadata: Free-form JSON-serializable details.
            ip_address: Client IP address.
            user_agent: Client user agent string.

        Returns:
            True if the entry was stored, False if recording failed.
        """
        try:
            await self.repository.create(
                ActivityLogModel(
                    user_id=user_id,
                    action=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    metadata_=dict(metadata or {}),
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            )
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Failed to record activity",
                action=action,
                user_id=user_id,
                error=str(e),
            )
            return False

        logger.debug("Activity recorded", action=action, user_id=user_id)
        return True
