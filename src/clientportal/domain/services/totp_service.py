"""TOTP (time-based one-time password) service.

Implements RFC 6238 codes via pyotp for authenticator-app MFA.
The service is stateless: it never stores secrets or used codes.
"""

import pyotp

TOTP_DIGITS = 6
TOTP_INTERVAL = 30
# Accept codes from +/- this many time steps
TOTP_VALID_WINDOW = 1


class TOTPService:
    """Generate secrets, enrollment URIs, and verify codes."""

    def __init__(
        self,
        digits: int = TOTP_DIGITS,
        interval: int = TOTP_INTERVAL,
        valid_window: int = TOTP_VALID_WINDOW,
    ) -> None:
        self.digits = digits
        self.interval = interval
        self.valid_window = valid_window

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(secret, digits=self.digits, interval=self.interval)

    def generate_secret(self) -> str:
        """Generate a random base32 secret (32 characters, 160 bits)."""
        return pyotp.random_base32()

    def provisioning_uri(self, account_label: str, issuer_name: str, secret: str) -> str:
        """Format an ``otpauth://`` URI for QR-code enrollment.

        Args:
            account_label: Label shown in the authenticator app (the user's email).
            issuer_name: Issuer shown in the authenticator app.
            secret: Base32 secret.

        Returns:
            otpauth URI string.
        """
        return self._totp(secret).provisioning_uri(name=account_label, issuer_name=issuer_name)

    def current_code(self, secret: str) -> str:
        """Return the code for the current time step."""
        return self._totp(secret).now()

    def verify(self, code: str | None, secret: str | None) -> bool:
        """Verify a code against a secret, tolerating one step of clock skew.

        Args:
            code: Code typed by the user.
            secret: Base32 secret stored for the user.

        Returns:
            True if the code is valid for the current window.
        """
        if not code or not secret:
            return False
        code = code.strip().replace(" ", "")
        if len(code) != self.digits or not code.isdigit():
            return False
        try:
            return self._totp(secret).verify(code, valid_window=self.valid_window)
        except (ValueError, TypeError):
            # Malformed base32 secret
            return False


# Default TOTP service instance
totp_service = TOTPService()
