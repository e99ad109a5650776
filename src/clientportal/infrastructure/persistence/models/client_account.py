"""SQLAlchemy model for client organizations."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clientportal.infrastructure.persistence.database import Base


class ClientAccountModel(Base):
    """A client organization that client-role users belong to.

    Attributes:
        id: Primary key (UUID string).
        name: Display name.
        slug: URL-friendly unique identifier.
        status: One of ``active``, ``onboarding``, ``inactive``.
        primary_contact_email: Email of the registering contact.
        metadata_: Free-form string-keyed JSON map (column ``metadata``).
    """

    __tablename__ = "client_accounts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="onboarding")
    primary_contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    users: Mapped[list["UserModel"]] = relationship(  # noqa: F821
        "UserModel",
        back_populates="client_account",
    )

    def __repr__(self) -> str:
        return f"<ClientAccount(id={self.id}, slug={self.slug})>"
