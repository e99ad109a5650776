"""Domain services for the client portal.

Only services without persistence dependencies are re-exported here. The
credential store, token ledger and auth orchestrator are imported from
their own modules.
"""

from clientportal.domain.services.broadcaster import (
    Broadcaster,
    InMemoryBroadcaster,
    NullBroadcaster,
)
from clientportal.domain.services.duration_parser import parse_duration
from clientportal.domain.services.password_validator import (
    PasswordValidationResult,
    PasswordValidator,
    default_password_validator,
)
from clientportal.domain.services.slug_generator import SlugGenerator
from clientportal.domain.services.totp_service import TOTPService, totp_service

__all__ = [
    "Broadcaster",
    "InMemoryBroadcaster",
    "NullBroadcaster",
    "PasswordValidationResult",
    "PasswordValidator",
    "SlugGenerator",
    "TOTPService",
    "default_password_validator",
    "parse_duration",
    "totp_service",
]
