"""Token ledger.

Issues, records and consumes email verification, password reset and
refresh tokens. Only SHA-256 hashes are persisted; the plaintext exists
solely in the value returned to the caller.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from clientportal.core.exceptions import InvalidOrExpiredTokenError
from clientportal.core.logging import get_logger
from clientportal.domain.entities.token import LedgerToken, TokenType, hash_token
from clientportal.infrastructure.persistence.repositories.token_repository import (
    TokenRepository,
)

logger = get_logger(__name__)


class TokenLedger:
    """Service for single-use and renewable token bookkeeping."""

    def __init__(self, session: AsyncSession, token_repo: TokenRepository | None = None) -> None:
        """Initialize the ledger.

        Args:
            session: SQLAlchemy async session.
            token_repo: Repository for token operations.
        """
        self.session = session
        self.token_repo = token_repo or TokenRepository(session)

    async def issue(self, user_id: str, token_type: TokenType, ttl: timedelta) -> str:
        """Mint a random token and record its hash.

        Args:
            user_id: Owner of the token.
            token_type: What the token may be used for.
            ttl: Lifetime from now.

        Returns:
            The raw token value (48 hex characters).
        """
        entity, raw_token = LedgerToken.generate(user_id, token_type, ttl)
        await self.token_repo.create(entity)
        logger.debug(
            "Ledger token issued",
            user_id=user_id,
            token_type=token_type.value,
            expires_at=entity.expires_at.isoformat(),
        )
        return raw_token

    async def store(
        self, user_id: str, raw_token: str, token_type: TokenType, ttl: timedelta
    ) -> LedgerToken:
        """Record an externally minted value (a signed refresh token) by hash."""
        return await self.token_repo.create(
            LedgerToken.for_value(user_id, raw_token, token_type, ttl)
        )

    async def consume(self, raw_token: str, token_type: TokenType) -> LedgerToken:
        """Use a token exactly once.

        Single-use tokens are marked consumed; refresh tokens are deleted. In
        both cases the check and the state change are one statement, so of two
        concurrent callers only one succeeds.

        Args:
            raw_token: The value presented by the user.
            token_type: Expected token type.

        Returns:
            The consumed ledger entry.

        Raises:
            InvalidOrExpiredTokenError: If the token is unknown, already used,
                or expired.
        """
        token_hash = hash_token(raw_token)
        now = datetime.now(timezone.utc)

        if token_type.is_single_use:
            token = await self.token_repo.consume_single_use(token_hash, token_type, now)
        else:
            token = await self.token_repo.take(token_hash, token_type)
            if token is not None and token.is_expired(now):
                logger.info("Expired refresh token presented", user_id=token.user_id)
                token = None

        if token is None:
            raise InvalidOrExpiredTokenError()
        return token

    async def revoke(self, raw_token: str, token_type: TokenType) -> bool:
        """Delete one token. Unknown values are ignored."""
        return await self.token_repo.delete_by_hash(hash_token(raw_token), token_type)

    async def revoke_all_for_user(self, user_id: str, token_type: TokenType) -> int:
        """Delete every token of one type belonging to a user."""
        return await self.token_repo.delete_all_for_user(user_id, token_type)

    async def purge_expired(self) -> int:
        """Delete expired rows of every type.

        Expiry is enforced when a token is consumed regardless of whether
        this sweep has run.
        """
        purged = await self.token_repo.delete_expired()
        logger.info("Expired ledger tokens purged", count=purged)
        return purged
