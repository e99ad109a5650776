"""Email dispatcher.

Sends transactional emails (verification links, password reset links)
through the configured provider. Delivery is best-effort: a provider
failure is logged and reported as ``False``, never raised, so it cannot
undo work the caller has already committed.

``dispatch`` schedules delivery on the running loop and returns at once, so
a request never waits on the provider.
"""

import asyncio
import html
import re

from clientportal.core.config import Settings, get_settings
from clientportal.core.logging import get_logger
from clientportal.infrastructure.services.email.email_provider import EmailProvider
from clientportal.infrastructure.services.email.log_file_provider import LogFileEmailProvider
from clientportal.infrastructure.services.email.smtp_provider import SMTPProvider, SMTPSettings

logger = get_logger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def html_to_text(html_body: str) -> str:
    """Plain-text alternative for an HTML body."""
    text = _TAG_RE.sub("", html_body)
    text = html.unescape(text)
    lines = [line.strip() for line in text.splitlines()]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def build_email_provider(settings: Settings) -> EmailProvider:
    """Choose SMTP when host and credentials are configured, else the log file."""
    if settings.smtp_configured:
        return SMTPProvider(SMTPSettings.from_settings(settings))
    return LogFileEmailProvider(settings.email_log_file)


class EmailService:
    """Service for sending emails."""

    def __init__(
        self,
        settings: Settings | None = None,
        provider: EmailProvider | None = None,
    ) -> None:
        """Initialize the email service.

        Args:
            settings: Application settings (sender identity, SMTP config).
            provider: Provider override. Defaults to the one selected from settings.
        """
        self.settings = settings or get_settings()
        self.provider = provider or build_email_provider(self.settings)
        # Strong references; the loop only keeps weak ones to running tasks
        self._pending: set[asyncio.Task[bool]] = set()

    def dispatch(self, to: str, subject: str, html_body: str) -> None:
        """Queue one email for background delivery."""
        task = asyncio.create_task(self.send(to, subject, html_body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug("Email queued", to=to, subject=subject)

    async def drain(self) -> None:
        """Wait for every queued email to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        """Send one email.

        Args:
            to: Recipient email address.
            subject: Email subject line.
            html_body: HTML email body.

        Returns:
            True if the provider accepted the message, False otherwise.
        """
        try:
            sent = await self.provider.send_email(
                to=to,
                subject=subject,
                html_body=html_body,
                text_body=html_to_text(html_body),
                from_email=self.settings.email_from,
                from_name=self.settings.email_from_name,
            )
        except Exception as e:
            logger.error(
                "Email delivery failed",
                to=to,
                subject=subject,
                provider=self.provider.name,
                error=str(e),
            )
            return False

        if sent:
            logger.info("Email sent", to=to, subject=subject, provider=self.provider.name)
        else:
            logger.warning("Email provider declined message", to=to, subject=subject)
        return sent
