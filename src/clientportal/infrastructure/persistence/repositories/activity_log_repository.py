"""Activity log repository.

Write-mostly: entries are appended by the audit service and read back
only for inspection.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clientportal.infrastructure.persistence.models import ActivityLogModel


class ActivityLogRepository:
    """Repository for activity log database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, entry: ActivityLogModel) -> ActivityLogModel:
        """Append an activity log entry.

        Args:
            entry: Activity log model to create.

        Returns:
            Created activity log model.
        """
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[ActivityLogModel]:
        """List the most recent entries for a user, newest first.

        Args:
            user_id: User ID to filter by.
            limit: Maximum number of entries to return.

        Returns:
            List of activity log models.
        """
        result = await self.session.execute(
            select(ActivityLogModel)
            .where(ActivityLogModel.user_id == user_id)
            .order_by(ActivityLogModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
