"""Credential store.

Owns persisted user identity: the salted password hash, role, MFA secret
and the failed-login counters that drive account lockout.
"""

import math
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clientportal.core.config import Settings, get_settings
from clientportal.core.exceptions import ConflictError
from clientportal.core.logging import get_logger
from clientportal.domain.entities.role import Role
from clientportal.infrastructure.auth.password_hasher import (
    dummy_password_hash,
    hash_password,
    needs_rehash,
    verify_password,
)
from clientportal.infrastructure.persistence.models.user import UserModel
from clientportal.infrastructure.persistence.repositories.user_repository import UserRepository

logger = get_logger(__name__)

EMAIL_IN_USE_MESSAGE = "Email already in use"


def normalize_email(email: str) -> str:
    """Emails are compared and stored trimmed and lowercased."""
    return email.strip().lower()


def _utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CredentialStore:
    """Persistence-backed user credentials and lockout state."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        user_repo: UserRepository | None = None,
    ) -> None:
        """Initialize the credential store.

        Args:
            session: SQLAlchemy async session.
            settings: Application settings (lockout limits).
            user_repo: Repository for user operations.
        """
        self.session = session
        self.settings = settings or get_settings()
        self.user_repo = user_repo or UserRepository(session)

    async def create_user(
        self,
        email: str,
        raw_password: str,
        first_name: str,
        last_name: str,
        role: Role = Role.CLIENT,
        client_account_id: str | None = None,
    ) -> UserModel:
        """Create a user with a freshly hashed password.

        Args:
            email: Email address (normalized before storage).
            raw_password: Plaintext password, hashed before it reaches the row.
            first_name: Given name.
            last_name: Family name.
            role: Portal role.
            client_account_id: Client organization for client-role users.

        Returns:
            The flushed user model.

        Raises:
            ConflictError: If the email is already registered.
        """
        email = normalize_email(email)
        if await self.user_repo.email_exists(email):
            raise ConflictError(EMAIL_IN_USE_MESSAGE)

        user = UserModel(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_password(raw_password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role=role,
            client_account_id=client_account_id,
            is_email_verified=False,
            mfa_enabled=False,
            failed_login_attempts=0,
            password_changed_at=datetime.now(timezone.utc),
            preferences={},
        )
        try:
            return await self.user_repo.create(user)
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email
            await self.session.rollback()
            raise ConflictError(EMAIL_IN_USE_MESSAGE) from e

    async def email_exists(self, email: str) -> bool:
        return await self.user_repo.email_exists(normalize_email(email))

    async def get_by_email(self, email: str) -> UserModel | None:
        return await self.user_repo.get_by_email(normalize_email(email))

    async def get_by_id(self, user_id: str) -> UserModel | None:
        return await self.user_repo.get_by_id(user_id)

    def verify_password(self, user: UserModel | None, candidate: str) -> bool:
        """Check a candidate password against the stored hash.

        When ``user`` is None a dummy hash is checked instead so that unknown
        emails cost the same as wrong passwords.
        """
        if user is None:
            verify_password(candidate, dummy_password_hash())
            return False
        return verify_password(candidate, user.password_hash)

    def lockout_remaining(self, user: UserModel, now: datetime | None = None) -> int | None:
        """Whole minutes left on an active lock, or None when not locked.

        Partial minutes round up, so a lock never reports 0 minutes.
        """
        lockout_until = _utc(user.lockout_until)
        if lockout_until is None:
            return None
        now = now or datetime.now(timezone.utc)
        if lockout_until <= now:
            return None
        return max(1, math.ceil((lockout_until - now).total_seconds() / 60))

    async def record_failed_attempt(self, user: UserModel) -> int:
        """Count a failed login and lock the account when the limit is reached.

        Returns:
            The new consecutive failure count.
        """
        lockout_until = datetime.now(timezone.utc) + timedelta(
            minutes=self.settings.lockout_minutes
        )
        attempts, locked_until = await self.user_repo.record_failed_attempt(
            user,
            max_attempts=self.settings.max_failed_login_attempts,
            lockout_until=lockout_until,
        )
        if attempts >= self.settings.max_failed_login_attempts:
            logger.warning(
                "Account locked after repeated failed logins",
                user_id=user.id,
                failed_attempts=attempts,
                lockout_until=locked_until.isoformat() if locked_until else None,
            )
        return attempts

    async def clear_lockout(self, user: UserModel, observed_attempts: int | None = None) -> bool:
        """Reset the failure counter.

        Args:
            user: User to reset.
            observed_attempts: Counter value seen when the password was checked.
                The reset is skipped if a concurrent failure moved it. Pass
                None to reset unconditionally.
        """
        return await self.user_repo.clear_lockout(user, observed_attempts)

    async def set_password(self, user: UserModel, raw_password: str) -> UserModel:
        """Re-hash and store a new password, clearing any lockout."""
        await self.user_repo.update(
            user,
            password_hash=hash_password(raw_password),
            password_changed_at=datetime.now(timezone.utc),
        )
        await self.user_repo.clear_lockout(user)
        return user

    async def upgrade_hash_if_needed(self, user: UserModel, raw_password: str) -> bool:
        """Re-hash a just-verified password when the cost parameters were raised."""
        if not needs_rehash(user.password_hash):
            return False
        await self.user_repo.update(user, password_hash=hash_password(raw_password))
        logger.info("Password hash upgraded", user_id=user.id)
        return True

    async def mark_logged_in(self, user: UserModel) -> None:
        await self.user_repo.update_last_login(user)

    async def mark_email_verified(self, user: UserModel) -> UserModel:
        return await self.user_repo.update(user, is_email_verified=True)

    async def store_mfa_secret(self, user: UserModel, secret: str) -> UserModel:
        """Store a pending TOTP secret without changing ``mfa_enabled``."""
        return await self.user_repo.update(user, mfa_secret=secret)

    async def enable_mfa(self, user: UserModel) -> UserModel:
        return await self.user_repo.update(user, mfa_enabled=True)

    async def disable_mfa(self, user: UserModel) -> UserModel:
        """Turn MFA off and forget the secret."""
        return await self.user_repo.update(user, mfa_enabled=False, mfa_secret=None)
