"""SMTP email provider implementation.

Uses aiosmtplib for asynchronous email sending via SMTP.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib
from pydantic import BaseModel, ConfigDict

from clientportal.core.config import Settings
from clientportal.core.logging import get_logger
from clientportal.infrastructure.services.email.email_provider import EmailProvider

logger = get_logger(__name__)


class SMTPSettings(BaseModel):
    """Configuration settings for the SMTP provider."""

    model_config = ConfigDict(from_attributes=True)

    host: str
    port: int = 587
    username: str
    password: str
    use_tls: bool = True
    timeout: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> "SMTPSettings":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )


class SMTPProvider(EmailProvider):
    """SMTP email provider implementation.

    Sends emails using the SMTP protocol via aiosmtplib. With ``use_tls`` the
    connection is upgraded with STARTTLS before login.
    """

    name = "smtp"

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the SMTP provider.

        Args:
            settings: SMTP configuration settings.
        """
        self.settings = settings

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str,
    ) -> bool:
        """Send an email via SMTP.

        Returns:
            True if email was sent successfully.

        Raises:
            Exception: If SMTP connection or sending fails.
        """
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{from_name} <{from_email}>"
        message["To"] = to

        message.attach(MIMEText(text_body, "plain"))
        message.attach(MIMEText(html_body, "html"))

        try:
            async with aiosmtplib.SMTP(
                hostname=self.settings.host,
                port=self.settings.port,
                timeout=self.settings.timeout,
                start_tls=False,
            ) as smtp:
                if self.settings.use_tls:
                    await smtp.starttls()
                await smtp.login(self.settings.username, self.settings.password)
                await smtp.send_message(message)
            return True
        except Exception as e:
            logger.error("Failed to send email via SMTP", host=self.settings.host, error=str(e))
            raise
