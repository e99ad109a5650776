"""User repository for database operations."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, case, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from clientportal.infrastructure.persistence.models import UserModel


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        """Create a new user.

        Args:
            user: User model to create.

        Returns:
            Created user model.
        """
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str) -> UserModel | None:
        """Get a user by ID.

        Args:
            user_id: User ID (UUID string).

        Returns:
            User model if found, None otherwise.
        """
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> UserModel | None:
        """Get a user by email address.

        Args:
            email: Email address (compared lowercased and trimmed).

        Returns:
            User model if found, None otherwise.
        """
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        """Check if an email is already registered.

        Args:
            email: Email to check.

        Returns:
            True if the email exists, False otherwise.
        """
        result = await self.session.execute(
            select(UserModel.id)
            .where(UserModel.email == email.strip().lower())
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def record_failed_attempt(
        self, user: UserModel, max_attempts: int, lockout_until: datetime
    ) -> tuple[int, datetime | None]:
        """Increment the failed-login counter and lock when it reaches the limit.

        Increment and threshold comparison happen in one UPDATE, so concurrent
        failures are all counted.

        Args:
            user: User whose counter to increment.
            max_attempts: Counter value at which the account locks.
            lockout_until: Lock expiry applied when the limit is reached.

        Returns:
            Tuple of (new counter value, lockout_until after the update).
        """
        incremented = UserModel.failed_login_attempts + 1
        stmt = (
            update(UserModel)
            .where(UserModel.id == user.id)
            .values(
                failed_login_attempts=incremented,
                lockout_until=case(
                    (
                        incremented >= max_attempts,
                        literal(lockout_until, type_=DateTime(timezone=True)),
                    ),
                    else_=UserModel.lockout_until,
                ),
            )
            .returning(UserModel.failed_login_attempts, UserModel.lockout_until)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        attempts, locked_until = result.one()
        if locked_until is not None and locked_until.tzinfo is None:
            locked_until = locked_until.replace(tzinfo=timezone.utc)

        set_committed_value(user, "failed_login_attempts", attempts)
        set_committed_value(user, "lockout_until", locked_until)
        return attempts, locked_until

    async def clear_lockout(self, user: UserModel, observed_attempts: int | None = None) -> bool:
        """Reset the failed-login counter and lock.

        Args:
            user: User whose counter to reset.
            observed_attempts: When given, only reset if the counter still holds
                this value. A failure recorded in between is kept.

        Returns:
            True if the row was reset, False if the counter had moved on.
        """
        stmt = update(UserModel).where(UserModel.id == user.id)
        if observed_attempts is not None:
            stmt = stmt.where(UserModel.failed_login_attempts == observed_attempts)
        stmt = stmt.values(failed_login_attempts=0, lockout_until=None).execution_options(
            synchronize_session=False
        )
        result = await self.session.execute(stmt)
        if result.rowcount > 0:
            set_committed_value(user, "failed_login_attempts", 0)
            set_committed_value(user, "lockout_until", None)
            return True
        return False

    async def update(self, user: UserModel, **values: Any) -> UserModel:
        """Apply attribute changes to a user and flush them.

        Args:
            user: User model to modify.
            **values: Attribute names and their new values.

        Returns:
            The updated user model.
        """
        for name, value in values.items():
            setattr(user, name, value)
        await self.session.flush()
        return user

    async def update_last_login(self, user: UserModel) -> None:
        """Update the last_login_at timestamp for a user.

        Args:
            user: User to update.
        """
        await self.update(user, last_login_at=datetime.now(timezone.utc))
