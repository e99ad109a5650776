"""Client Portal - authentication and session core.

Credential verification, account lockout, refresh-token rotation, email
verification and password reset tokens, and TOTP multi-factor
authentication for a multi-tenant client portal backend.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
