"""SQLAlchemy model for the users table.

Emails are stored lowercased and are unique across the whole portal.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clientportal.domain.entities.role import Role
from clientportal.infrastructure.persistence.database import Base


class UserModel(Base):
    """SQLAlchemy model for the users table.

    Attributes:
        id: Primary key (UUID string).
        email: Lowercased email address (globally unique).
        password_hash: Argon2id hash of the password.
        first_name: Given name.
        last_name: Family name.
        role: Portal role.
        client_account_id: Optional foreign key to client_accounts.
        is_email_verified: Whether the verification link was used.
        mfa_enabled: Whether TOTP is required at login.
        mfa_secret: Base32 TOTP secret (present once MFA setup was initiated).
        failed_login_attempts: Consecutive failed logins since the last success.
        lockout_until: Logins are refused until this time.
        password_changed_at: Timestamp of last password change.
        last_login_at: Timestamp of last successful login.
        preferences: Free-form UI preferences.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="User ID (UUID)",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Lowercased email address",
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Argon2id password hash",
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, native_enum=False, length=20, values_callable=lambda e: [r.value for r in e]),
        nullable=False,
        default=Role.CLIENT,
    )
    client_account_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("client_accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mfa_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mfa_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lockout_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    password_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    preferences: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    client_account: Mapped["ClientAccountModel | None"] = relationship(  # noqa: F821
        "ClientAccountModel",
        back_populates="users",
    )
    tokens: Mapped[list["TokenModel"]] = relationship(  # noqa: F821
        "TokenModel",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
