"""Outward-facing user representation.

``UserProfile`` is the only shape in which a user leaves the
authentication core. It has no field for the password hash or the MFA
secret, so neither can be serialized by accident.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from clientportal.domain.entities.role import Role


@dataclass(frozen=True)
class UserProfile:
    """Sanitized user data.

    Attributes:
        id: User ID (UUID string).
        email: Lowercased email address.
        first_name: Given name.
        last_name: Family name.
        role: Portal role.
        client_account_id: Client organization the user belongs to, if any.
        is_email_verified: Whether the email verification link was used.
        mfa_enabled: Whether TOTP is required at login.
        last_login_at: Timestamp of last successful login.
        password_changed_at: Timestamp of last password change.
        preferences: Free-form UI preferences.
        created_at: When the user was created.
    """

    id: str
    email: str
    first_name: str
    last_name: str
    role: Role
    is_email_verified: bool
    mfa_enabled: bool
    client_account_id: str | None = None
    last_login_at: datetime | None = None
    password_changed_at: datetime | None = None
    preferences: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, user: Any) -> "UserProfile":
        """Build a profile from a persisted user row."""
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=Role(user.role),
            is_email_verified=bool(user.is_email_verified),
            mfa_enabled=bool(user.mfa_enabled),
            client_account_id=user.client_account_id,
            last_login_at=user.last_login_at,
            password_changed_at=user.password_changed_at,
            preferences=dict(user.preferences or {}),
            created_at=user.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        return data
