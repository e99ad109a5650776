"""Client account repository for database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clientportal.infrastructure.persistence.models import ClientAccountModel


class ClientAccountRepository:
    """Repository for client account database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, account: ClientAccountModel) -> ClientAccountModel:
        """Create a new client account.

        Args:
            account: Client account model to create.

        Returns:
            Created client account model.
        """
        self.session.add(account)
        await self.session.flush()
        return account

    async def get_by_id(self, account_id: str) -> ClientAccountModel | None:
        result = await self.session.execute(
            select(ClientAccountModel).where(ClientAccountModel.id == account_id)
        )
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        """Check if a slug is already taken.

        Args:
            slug: URL-friendly identifier to check.

        Returns:
            True if the slug exists, False otherwise.
        """
        result = await self.session.execute(
            select(ClientAccountModel.id).where(ClientAccountModel.slug == slug).limit(1)
        )
        return result.scalar_one_or_none() is not None
