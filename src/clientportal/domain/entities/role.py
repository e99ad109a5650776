"""User roles and the capabilities each role grants."""

from enum import Enum


class Role(str, Enum):
    """Closed set of portal roles.

    Capability checks go through the predicates below rather than comparing
    role names at call sites.
    """

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    CLIENT = "client"

    @property
    def can_manage_users(self) -> bool:
        return self is Role.ADMIN

    @property
    def can_manage_clients(self) -> bool:
        return self in (Role.ADMIN, Role.MANAGER)

    @property
    def is_internal(self) -> bool:
        """Staff-side roles, as opposed to client contacts."""
        return self is not Role.CLIENT

    @property
    def requires_client_account(self) -> bool:
        """Client users are attached to a client organization on registration."""
        return self is Role.CLIENT
