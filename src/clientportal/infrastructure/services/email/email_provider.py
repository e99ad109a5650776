"""Abstract base class for email providers.

Defines the interface that all email providers must implement.
"""

from abc import ABC, abstractmethod


class EmailProvider(ABC):
    """Abstract base class for email providers.

    Implementations: SMTP delivery and a log-file capture used when SMTP is
    not configured.
    """

    name: str = "abstract"

    @abstractmethod
    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address.
            subject: Email subject line.
            html_body: HTML email body.
            text_body: Plain text email body.
            from_email: Sender email address.
            from_name: Sender display name.

        Returns:
            True if email was sent successfully, False otherwise.

        Raises:
            Exception: If email sending fails with an error.
        """
        pass
