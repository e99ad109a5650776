"""Repository for ledger token operations.

Consumption of a token is a single conditional statement so that two
concurrent requests presenting the same value cannot both succeed.
"""

from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clientportal.domain.entities.token import LedgerToken, TokenType
from clientportal.infrastructure.persistence.models.token import TokenModel

_RETURNED_COLUMNS = (
    TokenModel.id,
    TokenModel.user_id,
    TokenModel.token_hash,
    TokenModel.type,
    TokenModel.expires_at,
    TokenModel.consumed_at,
    TokenModel.created_at,
)


def _utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TokenRepository:
    """Repository for ledger token database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: LedgerToken) -> TokenModel:
        """Convert domain entity to infrastructure model."""
        return TokenModel(
            id=entity.id,
            user_id=entity.user_id,
            token_hash=entity.token_hash,
            type=entity.type,
            expires_at=entity.expires_at,
            consumed_at=entity.consumed_at,
            created_at=entity.created_at,
        )

    def _to_entity(self, row) -> LedgerToken:
        """Convert a model instance or a RETURNING row to a domain entity."""
        return LedgerToken(
            id=row.id,
            user_id=row.user_id,
            token_hash=row.token_hash,
            type=TokenType(row.type),
            expires_at=_utc(row.expires_at),
            consumed_at=_utc(row.consumed_at),
            created_at=_utc(row.created_at),
        )

    async def create(self, entity: LedgerToken) -> LedgerToken:
        """Store a new ledger token.

        Args:
            entity: The LedgerToken entity to store.

        Returns:
            The stored entity.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_hash(self, token_hash: str, token_type: TokenType) -> LedgerToken | None:
        """Look up a token by its hash and type.

        Args:
            token_hash: SHA-256 hex digest of the raw token.
            token_type: Expected token type.

        Returns:
            The LedgerToken entity if found, None otherwise.
        """
        stmt = select(TokenModel).where(
            TokenModel.token_hash == token_hash,
            TokenModel.type == token_type,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def consume_single_use(
        self, token_hash: str, token_type: TokenType, now: datetime | None = None
    ) -> LedgerToken | None:
        """Mark an unconsumed, unexpired token as consumed.

        Args:
            token_hash: SHA-256 hex digest of the raw token.
            token_type: Expected token type.
            now: Consumption time (defaults to the current UTC time).

        Returns:
            The consumed token, or None if no usable row matched.
        """
        now = now or datetime.now(timezone.utc)
        stmt = (
            update(TokenModel)
            .where(
                TokenModel.token_hash == token_hash,
                TokenModel.type == token_type,
                TokenModel.consumed_at.is_(None),
                TokenModel.expires_at > now,
            )
            .values(consumed_at=now)
            .returning(*_RETURNED_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        row = result.one_or_none()
        return self._to_entity(row) if row else None

    async def take(self, token_hash: str, token_type: TokenType) -> LedgerToken | None:
        """Delete a token and return what was deleted.

        The caller decides whether the deleted row was still usable; an
        expired row is removed either way.

        Args:
            token_hash: SHA-256 hex digest of the raw token.
            token_type: Expected token type.

        Returns:
            The deleted token, or None if no row matched.
        """
        stmt = (
            delete(TokenModel)
            .where(
                TokenModel.token_hash == token_hash,
                TokenModel.type == token_type,
            )
            .returning(*_RETURNED_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        row = result.one_or_none()
        return self._to_entity(row) if row else None

    async def delete_by_hash(self, token_hash: str, token_type: TokenType) -> bool:
        """Delete a single token.

        Returns:
            True if a token was deleted, False if not found.
        """
        stmt = (
            delete(TokenModel)
            .where(
                TokenModel.token_hash == token_hash,
                TokenModel.type == token_type,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def delete_all_for_user(self, user_id: str, token_type: TokenType) -> int:
        """Delete every token of one type belonging to a user.

        Args:
            user_id: The user's UUID.
            token_type: Token type to delete.

        Returns:
            Number of tokens deleted.
        """
        stmt = (
            delete(TokenModel)
            .where(
                TokenModel.user_id == user_id,
                TokenModel.type == token_type,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def delete_expired(self, now: datetime | None = None) -> int:
        """Delete all expired tokens of every type.

        Returns:
            Number of tokens deleted.
        """
        now = now or datetime.now(timezone.utc)
        stmt = (
            delete(TokenModel)
            .where(TokenModel.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def count_for_user(self, user_id: str, token_type: TokenType) -> int:
        """Count tokens of one type belonging to a user."""
        result = await self._session.execute(
            select(func.count())
            .select_from(TokenModel)
            .where(TokenModel.user_id == user_id, TokenModel.type == token_type)
        )
        return int(result.scalar_one())
