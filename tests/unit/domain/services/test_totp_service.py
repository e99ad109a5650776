"""Unit tests for TOTPService."""

import time
from urllib.parse import parse_qs, unquote, urlparse

import pyotp
import pytest

from clientportal.domain.services.totp_service import TOTPService


@pytest.fixture
def totp():
    return TOTPService()


@pytest.fixture
def secret(totp):
    return totp.generate_secret()


class TestTOTPService:
    def test_generate_secret_is_base32(self, totp):
        secret = totp.generate_secret()
        assert len(secret) == 32
        assert set(secret) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")

    def test_secrets_are_random(self, totp):
        assert totp.generate_secret() != totp.generate_secret()

    def test_provisioning_uri(self, totp, secret):
        uri = totp.provisioning_uri("user@example.com", "Secure Client Portal", secret)
        parsed = urlparse(uri)
        assert parsed.scheme == "otpauth"
        assert parsed.netloc == "totp"
        assert "user@example.com" in unquote(parsed.path)
        query = parse_qs(parsed.query)
        assert query["secret"] == [secret]
        assert query["issuer"] == ["Secure Client Portal"]

    def test_verify_current_code(self, totp, secret):
        assert totp.verify(totp.current_code(secret), secret) is True

    def test_verify_tolerates_one_step_of_skew(self, totp, secret):
        previous = pyotp.TOTP(secret).at(time.time() - 30)
        assert totp.verify(previous, secret) is True

    def test_verify_rejects_old_code(self, totp, secret):
        stale = pyotp.TOTP(secret).at(time.time() - 120)
        assert totp.verify(stale, secret) is False

    def test_verify_strips_spaces(self, totp, secret):
        code = totp.current_code(secret)
        assert totp.verify(f"{code[:3]} {code[3:]}", secret) is True

    @pytest.mark.parametrize("code", [None, "", "12345", "1234567", "abcdef"])
    def test_verify_rejects_malformed_codes(self, totp, secret, code):
        assert totp.verify(code, secret) is False

    def test_verify_without_secret(self, totp):
        assert totp.verify("123456", None) is False

    def test_verify_with_malformed_secret(self, totp):
        assert totp.verify("123456", "not base32 !!") is False
