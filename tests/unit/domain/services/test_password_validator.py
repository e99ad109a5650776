"""Unit tests for PasswordValidator."""

import pytest

from clientportal.domain.services.password_validator import (
    PasswordValidator,
    default_password_validator,
)


@pytest.fixture
def validator():
    return PasswordValidator()


class TestPasswordValidator:
    def test_valid_password(self, validator):
        result = validator.validate("Str0ng!Passw0rd")
        assert result.valid is True
        assert result.reason is None
        assert result.code is None

    def test_too_short(self, validator):
        result = validator.validate("Sh0rt!")
        assert result.valid is False
        assert result.code == "password_too_short"
        assert result.reason == "Password must be at least 12 characters long."

    def test_missing_lowercase(self, validator):
        result = validator.validate("ALLUPPER123!@#")
        assert result.code == "password_no_lowercase"
        assert result.reason == "Password must include a lowercase letter."

    def test_missing_uppercase(self, validator):
        result = validator.validate("alllower123!@#")
        assert result.code == "password_no_uppercase"
        assert result.reason == "Password must include an uppercase letter."

    def test_missing_digit(self, validator):
        result = validator.validate("NoDigitsHere!!")
        assert result.code == "password_no_digit"
        assert result.reason == "Password must include a number."

    def test_missing_special(self, validator):
        result = validator.validate("NoSpecial12345")
        assert result.code == "password_no_special"
        assert result.reason == "Password must include a special character."

    def test_first_failing_rule_wins(self, validator):
        """A short all-lowercase password reports length, not the missing classes."""
        assert validator.validate("abc").code == "password_too_short"
        assert validator.validate("lowercaseonly!").code == "password_no_uppercase"

    @pytest.mark.parametrize("special", ["-", "_", "=", "+", "[", "]", ";", "'", "/", "\\", '"'])
    def test_special_character_set(self, validator, special):
        assert validator.is_valid(f"Abcdefgh1234{special}")

    def test_custom_min_length(self):
        validator = PasswordValidator(min_length=16)
        assert not validator.is_valid("Str0ng!Passw0rd")
        assert validator.validate("Str0ng!Passw0rd").reason == (
            "Password must be at least 16 characters long."
        )

    def test_default_instance(self):
        assert default_password_validator.min_length == 12
