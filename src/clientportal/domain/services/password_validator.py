"""Password validation service.

Validates password strength against a fixed rule list. Rules are checked
in order and the first failing rule is the one reported, so error
messages are deterministic:

1. Minimum length
2. Lowercase letter requirement
3. Uppercase letter requirement
4. Digit requirement
5. Special character requirement
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class PasswordValidationResult:
    """Outcome of a password policy check.

    Attributes:
        valid: Whether the password satisfies every rule.
        reason: Human-readable message for the first failing rule.
        code: Machine-readable code for the first failing rule.
    """

    valid: bool
    reason: str | None = None
    code: str | None = None


class PasswordValidator:
    """Validates password strength.

    Default policy:
    - Minimum 12 characters
    - At least one lowercase letter
    - At least one uppercase letter
    - At least one digit
    - At least one special character
    """

    SPECIAL_CHARS = r"!@#$%^&*(),.?\":{}|<>\-_=+\[\];'/\\"

    def __init__(self, min_length: int = 12) -> None:
        """Initialize the password validator.

        Args:
            min_length: Minimum password length (default 12).
        """
        self.min_length = min_length
        self._rules: list[tuple[str, str, re.Pattern[str] | None]] = [
            (
                "password_too_short",
                f"Password must be at least {min_length} characters long.",
                None,
            ),
            (
                "password_no_lowercase",
                "Password must include a lowercase letter.",
                re.compile(r"[a-z]"),
            ),
            (
                "password_no_uppercase",
                "Password must include an uppercase letter.",
                re.compile(r"[A-Z]"),
            ),
            (
                "password_no_digit",
                "Password must include a number.",
                re.compile(r"\d"),
            ),
            (
                "password_no_special",
                "Password must include a special character.",
                re.compile(f"[{self.SPECIAL_CHARS}]"),
            ),
        ]

    def validate(self, password: str) -> PasswordValidationResult:
        """Validate a password against the policy.

        Args:
            password: The password to validate.

        Returns:
            A valid result, or the first rule the password breaks.
        """
        for code, message, pattern in self._rules:
            if pattern is None:
                failed = len(password) < self.min_length
            else:
                failed = pattern.search(password) is None
            if failed:
                return PasswordValidationResult(valid=False, reason=message, code=code)
        return PasswordValidationResult(valid=True)

    def is_valid(self, password: str) -> bool:
        """Check if a password is valid."""
        return self.validate(password).valid


# Default validator instance
default_password_validator = PasswordValidator()
