"""Authentication orchestrator.

Ties the credential store, token ledger, password policy, TOTP engine and
session issuer together into the login state machine:

    Unauthenticated -> CredentialsChecked -> MfaPending | Authenticated

The lockout guard runs before the password is checked. Every operation
commits its primary state change first; audit entries, emails and
broadcasts follow, so a failing collaborator never undoes issued tokens.
"""

import html
import secrets
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clientportal.core.config import Settings, get_settings
from clientportal.core.exceptions import (
    ConflictError,
    InvalidOrExpiredTokenError,
    LockedError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from clientportal.core.logging import get_logger
from clientportal.domain.entities.role import Role
from clientportal.domain.entities.token import TokenType
from clientportal.domain.entities.user import UserProfile
from clientportal.domain.services.broadcaster import Broadcaster, NullBroadcaster
from clientportal.domain.services.credential_store import (
    EMAIL_IN_USE_MESSAGE,
    CredentialStore,
    normalize_email,
)
from clientportal.domain.services.password_validator import (
    PasswordValidator,
    default_password_validator,
)
from clientportal.domain.services.slug_generator import SlugGenerator
from clientportal.domain.services.token_ledger import TokenLedger
from clientportal.domain.services.totp_service import TOTPService, totp_service
from clientportal.infrastructure.auth.jwt_service import JWTService
from clientportal.infrastructure.persistence.models.client_account import ClientAccountModel
from clientportal.infrastructure.persistence.models.user import UserModel
from clientportal.infrastructure.persistence.repositories.client_account_repository import (
    ClientAccountRepository,
)
from clientportal.infrastructure.services.audit_service import AuditService
from clientportal.infrastructure.services.email_service import EmailService

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
USER_NOT_FOUND = "User not found"

SESSION_REVOKED_EVENT = "session:revoked"
MFA_UPDATED_EVENT = "mfa:updated"

_SLUG_ATTEMPTS = 3


@dataclass(frozen=True)
class TokenPair:
    """Signed access token plus the refresh token recorded in the ledger."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a login attempt.

    Either ``mfa_required`` is True and nothing else is set, or a full
    session is returned.
    """

    mfa_required: bool = False
    access_token: str | None = None
    refresh_token: str | None = None
    user: UserProfile | None = None


@dataclass(frozen=True)
class MfaSetup:
    """Pending TOTP enrollment data shown to the user once."""

    secret: str
    otpauth_url: str


class AuthService:
    """Service orchestrating registration, login and session lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        email_service: EmailService | None = None,
        audit_service: AuditService | None = None,
        jwt_service: JWTService | None = None,
        totp: TOTPService | None = None,
        broadcaster: Broadcaster | None = None,
        password_validator: PasswordValidator | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Initialize the auth service.

        Args:
            session: SQLAlchemy async session for this unit of work.
            settings: Application settings.
            email_service: Dispatcher for verification and reset emails.
            audit_service: Activity log sink.
            jwt_service: Session token issuer.
            totp: TOTP engine.
            broadcaster: Real-time channel for session and MFA events.
            password_validator: Password policy.
            ip_address: Client IP recorded with audit entries.
            user_agent: Client user agent recorded with audit entries.
        """
        self.session = session
        self.settings = settings or get_settings()
        self.credentials = CredentialStore(session, self.settings)
        self.ledger = TokenLedger(session)
        self.client_accounts = ClientAccountRepository(session)
        self.email_service = email_service or EmailService(self.settings)
        self.audit_service = audit_service or AuditService(session)
        self.jwt_service = jwt_service or JWTService(self.settings)
        self.totp = totp or totp_service
        self.broadcaster = broadcaster or NullBroadcaster()
        self.password_validator = password_validator or default_password_validator
        self.ip_address = ip_address
        self.user_agent = user_agent

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_password_policy(self, password: str) -> None:
        result = self.password_validator.validate(password)
        if not result.valid:
            raise ValidationFailedError(result.reason, details={"code": result.code})

    async def _audit(self, action: str, user_id: str, metadata: dict[str, Any] | None = None) -> None:
        await self.audit_service.record(
            action=action,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            metadata=metadata,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
        )

    async def _broadcast(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        try:
            await self.broadcaster.emit(user_id, event, payload)
        except Exception as e:
            logger.error("Broadcast failed", user_id=user_id, broadcast_event=event, error=str(e))

    async def _require_user(self, user_id: str) -> UserModel:
        user = await self.credentials.get_by_id(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    async def _issue_session(self, user: UserModel) -> TokenPair:
        """Mint an access/refresh pair and record the refresh half."""
        access_token = self.jwt_service.issue_access_token(
            subject_id=user.id,
            email=user.email,
            role=Role(user.role).value,
            mfa_verified=True if user.mfa_enabled else None,
        )
        refresh_token = self.jwt_service.issue_refresh_token(user.id)
        await self.ledger.store(
            user.id, refresh_token, TokenType.REFRESH_TOKEN, self.settings.refresh_token_ttl
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def _create_client_account(self, name: str, contact_email: str) -> ClientAccountModel:
        slug = SlugGenerator.generate_unique(name)
        for _ in range(_SLUG_ATTEMPTS):
            if not await self.client_accounts.slug_exists(slug):
                break
            slug = SlugGenerator.generate_unique(name, suffix=secrets.token_hex(3))
        account = ClientAccountModel(
            name=name,
            slug=slug,
            status="onboarding",
            primary_contact_email=contact_email,
            metadata_={},
        )
        return await self.client_accounts.create(account)

    # =========================================================================
    # Registration and email verification
    # =========================================================================

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: Role | str = Role.CLIENT,
        client_name: str | None = None,
    ) -> UserProfile:
        """Register a new user.

        Client-role users get a fresh client account in ``onboarding``
        status, named after ``client_name`` or the user's full name.

        Raises:
            ValidationFailedError: If the password violates the policy.
            ConflictError: If the email is already registered.
        """
        self._check_password_policy(password)
        role = Role(role)
        email = normalize_email(email)

        if await self.credentials.email_exists(email):
            raise ConflictError(EMAIL_IN_USE_MESSAGE)

        client_account_id = None
        if role.requires_client_account:
            name = (client_name or "").strip() or f"{first_name} {last_name}".strip()
            account = await self._create_client_account(name, email)
            client_account_id = account.id

        user = await self.credentials.create_user(
            email=email,
            raw_password=password,
            first_name=first_name,
            last_name=last_name,
            role=role,
            client_account_id=client_account_id,
        )
        await self.session.commit()
        profile = UserProfile.from_model(user)

        logger.info("User registered", user_id=user.id, role=role.value)

        await self.send_email_verification(profile)
        await self._audit("user_registered", user.id, {"role": role.value})
        return profile

    async def send_email_verification(self, user: UserModel | UserProfile) -> None:
        """Issue an email verification token and queue the link for delivery."""
        raw_token = await self.ledger.issue(
            user.id, TokenType.EMAIL_VERIFICATION, self.settings.email_verification_ttl
        )
        await self.session.commit()

        verification_url = f"{self.settings.frontend_url}/verify-email?token={raw_token}"
        hours = self.settings.email_verification_token_expiration_hours
        body = (
            f"<p>Hello {html.escape(user.first_name)},</p>\n"
            "<p>Please verify your email address by clicking the link below:</p>\n"
            f'<p><a href="{verification_url}">Verify Email</a></p>\n'
            f"<p>This link will expire in {hours} hours.</p>"
        )
        self.email_service.dispatch(user.email, "Verify your account", body)

    async def resend_email_verification(self, user_id: str) -> None:
        """Send a new verification link to a user who has not verified yet.

        Raises:
            NotFoundError: If the user does not exist.
            ValidationFailedError: If the email is already verified.
        """
        user = await self._require_user(user_id)
        if user.is_email_verified:
            raise ValidationFailedError("Email already verified")
        await self.send_email_verification(UserProfile.from_model(user))

    async def verify_email(self, raw_token: str) -> UserProfile:
        """Consume a verification token and mark the owner's email verified.

        Raises:
            ValidationFailedError: If the token is invalid, used or expired.
            NotFoundError: If the token's user no longer exists.
        """
        try:
            token = await self.ledger.consume(raw_token, TokenType.EMAIL_VERIFICATION)
        except InvalidOrExpiredTokenError as e:
            raise ValidationFailedError(e.message) from e

        user = await self.credentials.get_by_id(token.user_id)
        if user is None:
            await self.session.commit()
            raise NotFoundError(USER_NOT_FOUND)

        await self.credentials.mark_email_verified(user)
        await self.session.commit()
        profile = UserProfile.from_model(user)

        logger.info("Email verified", user_id=user.id)
        await self._audit("email_verified", user.id)
        return profile

    # =========================================================================
    # Login and session lifecycle
    # =========================================================================

    async def login(self, email: str, password: str, mfa_code: str | None = None) -> LoginResult:
        """Authenticate with email, password and (when enabled) a TOTP code.

        Raises:
            LockedError: If the account is locked, even for a correct password.
            UnauthorizedError: On unknown email, wrong password or bad MFA code.
        """
        user = await self.credentials.get_by_email(email)
        if user is None:
            self.credentials.verify_password(None, password)
            logger.info("Login failed: unknown email")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        minutes_remaining = self.credentials.lockout_remaining(user)
        if minutes_remaining is not None:
            logger.info("Login refused: account locked", user_id=user.id)
            raise LockedError(minutes_remaining)

        observed_attempts = user.failed_login_attempts
        if not self.credentials.verify_password(user, password):
            attempts = await self.credentials.record_failed_attempt(user)
            await self.session.commit()
            logger.info("Login failed: wrong password", user_id=user.id, failed_attempts=attempts)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if observed_attempts > 0 or user.lockout_until is not None:
            await self.credentials.clear_lockout(user, observed_attempts)
        await self.credentials.upgrade_hash_if_needed(user, password)

        if user.mfa_enabled:
            if not mfa_code:
                await self.session.commit()
                return LoginResult(mfa_required=True)
            if not self.totp.verify(mfa_code, user.mfa_secret):
                await self.session.commit()
                logger.info("Login failed: invalid MFA code", user_id=user.id)
                raise UnauthorizedError("Invalid MFA code")

        await self.credentials.mark_logged_in(user)
        pair = await self._issue_session(user)
        await self.session.commit()
        profile = UserProfile.from_model(user)

        logger.info("User logged in", user_id=user.id, mfa=user.mfa_enabled)
        await self._audit("user_logged_in", user.id)
        return LoginResult(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=profile,
        )

    async def refresh_tokens(self, raw_refresh_token: str) -> TokenPair:
        """Rotate a refresh token.

        The presented token is deleted from the ledger in the same statement
        that checks it, so replaying it fails.

        Raises:
            UnauthorizedError: On a bad signature, a token missing from the
                ledger, an expired token, or a deleted user.
        """
        subject_id = self.jwt_service.verify_refresh(raw_refresh_token)

        try:
            stored = await self.ledger.consume(raw_refresh_token, TokenType.REFRESH_TOKEN)
        except InvalidOrExpiredTokenError as e:
            await self.session.commit()
            logger.info("Refresh rejected: token not in ledger", user_id=subject_id)
            raise UnauthorizedError("Invalid refresh token") from e

        user = await self.credentials.get_by_id(stored.user_id)
        if user is None or user.id != subject_id:
            await self.session.commit()
            raise UnauthorizedError(USER_NOT_FOUND)

        pair = await self._issue_session(user)
        await self.session.commit()
        logger.info("Session refreshed", user_id=user.id)
        return pair

    async def logout(self, user_id: str, raw_refresh_token: str | None = None) -> int:
        """End one session, or every session when no token is given.

        An unknown refresh token is ignored.

        Returns:
            Number of refresh tokens revoked.
        """
        if raw_refresh_token:
            revoked = int(await self.ledger.revoke(raw_refresh_token, TokenType.REFRESH_TOKEN))
        else:
            revoked = await self.ledger.revoke_all_for_user(user_id, TokenType.REFRESH_TOKEN)
        await self.session.commit()

        logger.info(
            "User logged out",
            user_id=user_id,
            everywhere=not raw_refresh_token,
            revoked=revoked,
        )
        return revoked

    # =========================================================================
    # Passwords
    # =========================================================================

    async def initiate_password_reset(self, email: str) -> None:
        """Email a password reset link if the address is registered.

        Behaves identically for unknown addresses from the caller's side.
        """
        user = await self.credentials.get_by_email(email)
        if user is None:
            logger.warning("Password reset requested for unknown email")
            return

        raw_token = await self.ledger.issue(
            user.id, TokenType.PASSWORD_RESET, self.settings.password_reset_ttl
        )
        await self.session.commit()

        reset_url = f"{self.settings.frontend_url}/reset-password?token={raw_token}"
        body = (
            f"<p>Hello {html.escape(user.first_name)},</p>\n"
            "<p>We received a request to reset your password. "
            "Use the link below to set a new password:</p>\n"
            f'<p><a href="{reset_url}">Reset Password</a></p>\n'
            "<p>If you did not request this, please contact support.</p>"
        )
        self.email_service.dispatch(user.email, "Password reset instructions", body)
        await self._audit("password_reset_requested", user.id)

    async def reset_password(self, raw_token: str, new_password: str) -> UserProfile:
        """Set a new password using a reset token and end every session.

        Raises:
            ValidationFailedError: If the password violates the policy or the
                token is invalid, used or expired.
        """
        self._check_password_policy(new_password)

        try:
            token = await self.ledger.consume(raw_token, TokenType.PASSWORD_RESET)
        except InvalidOrExpiredTokenError as e:
            raise ValidationFailedError(e.message) from e

        user = await self.credentials.get_by_id(token.user_id)
        if user is None:
            await self.session.commit()
            raise ValidationFailedError(USER_NOT_FOUND)

        await self.credentials.set_password(user, new_password)
        revoked = await self.ledger.revoke_all_for_user(user.id, TokenType.REFRESH_TOKEN)
        await self.session.commit()
        profile = UserProfile.from_model(user)

        logger.info("Password reset completed", user_id=user.id, sessions_revoked=revoked)
        await self._broadcast(user.id, SESSION_REVOKED_EVENT, {"reason": "password_reset"})
        await self._audit("password_reset_completed", user.id)
        return profile

    async def change_password(
        self, user_id: str, current_password: str, new_password: str
    ) -> UserProfile:
        """Change the password of a signed-in user.

        Raises:
            ValidationFailedError: If the new password violates the policy.
            NotFoundError: If the user does not exist.
            UnauthorizedError: If the current password is wrong.
        """
        self._check_password_policy(new_password)
        user = await self._require_user(user_id)

        if not self.credentials.verify_password(user, current_password):
            raise UnauthorizedError("Current password is incorrect")

        await self.credentials.set_password(user, new_password)
        await self.session.commit()
        profile = UserProfile.from_model(user)

        logger.info("Password changed", user_id=user.id)
        await self._audit("user_password_changed", user.id)
        return profile

    # =========================================================================
    # Multi-factor authentication
    # =========================================================================

    async def initiate_mfa_setup(self, user_id: str) -> MfaSetup:
        """Generate and store a pending TOTP secret.

        ``mfa_enabled`` is unchanged until the secret is confirmed.
        """
        user = await self._require_user(user_id)

        secret = self.totp.generate_secret()
        await self.credentials.store_mfa_secret(user, secret)
        await self.session.commit()

        otpauth_url = self.totp.provisioning_uri(user.email, self.settings.mfa_issuer, secret)
        logger.info("MFA setup initiated", user_id=user.id)
        return MfaSetup(secret=secret, otpauth_url=otpauth_url)

    async def confirm_mfa_setup(self, user_id: str, code: str) -> UserProfile:
        """Turn MFA on once the user proves they hold the pending secret.

        Raises:
            ValidationFailedError: If no secret is pending or the code is wrong.
        """
        user = await self.credentials.get_by_id(user_id)
        if user is None or not user.mfa_secret:
            raise ValidationFailedError("MFA not initialized")

        if not self.totp.verify(code, user.mfa_secret):
            raise ValidationFailedError("Invalid MFA token")

        await self.credentials.enable_mfa(user)
        await self.session.commit()
        profile = UserProfile.from_model(user)

        logger.info("MFA enabled", user_id=user.id)
        await self._broadcast(user.id, MFA_UPDATED_EVENT, {"mfaEnabled": True})
        await self._audit("mfa_enabled", user.id)
        return profile

    async def disable_mfa(self, user_id: str, password: str) -> None:
        """Turn MFA off after re-checking the password.

        Raises:
            NotFoundError: If the user does not exist.
            UnauthorizedError: If the password is wrong.
        """
        user = await self._require_user(user_id)

        if not self.credentials.verify_password(user, password):
            raise UnauthorizedError("Invalid password")

        await self.credentials.disable_mfa(user)
        await self.session.commit()

        logger.info("MFA disabled", user_id=user.id)
        await self._broadcast(user.id, MFA_UPDATED_EVENT, {"mfaEnabled": False})
        await self._audit("mfa_disabled", user.id)

    async def get_profile(self, user_id: str) -> UserProfile:
        """Current profile of a user.

        Raises:
            NotFoundError: If the user does not exist.
        """
        return UserProfile.from_model(await self._require_user(user_id))
