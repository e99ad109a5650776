"""SQLAlchemy model for ledger tokens.

Stores hashes of email verification, password reset and refresh tokens.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clientportal.domain.entities.token import TokenType
from clientportal.infrastructure.persistence.database import Base


class TokenModel(Base):
    """SQLAlchemy model for the tokens table.

    Attributes:
        id: Primary key (UUID string).
        user_id: Foreign key to users table.
        token_hash: SHA-256 hash of the raw token.
        type: Token purpose.
        expires_at: Timestamp when the token expires.
        consumed_at: Timestamp when a single-use token was used (nullable).
        created_at: Timestamp when the token was created.
    """

    __tablename__ = "tokens"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Token ID (UUID)",
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to users table",
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="SHA-256 hash of the raw token",
    )
    type: Mapped[TokenType] = mapped_column(
        Enum(
            TokenType,
            native_enum=False,
            length=32,
            values_callable=lambda e: [t.value for t in e],
        ),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Timestamp when the token expires",
    )
    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp when the token was used",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    user: Mapped["UserModel"] = relationship(  # noqa: F821
        "UserModel",
        back_populates="tokens",
    )

    __table_args__ = (
        Index("ix_tokens_hash_type", "token_hash", "type"),
        Index("ix_tokens_user_type", "user_id", "type"),
    )

    def __repr__(self) -> str:
        return f"<Token(id={self.id}, user_id={self.user_id}, type={self.type})>"
