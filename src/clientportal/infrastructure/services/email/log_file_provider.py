"""Email provider that appends messages to a local log file.

Used in development and whenever SMTP credentials are not configured, so
verification and reset links can still be picked up by hand.
"""

import asyncio
from pathlib import Path

from clientportal.core.logging import get_logger
from clientportal.infrastructure.services.email.email_provider import EmailProvider

logger = get_logger(__name__)


class LogFileEmailProvider(EmailProvider):
    """Captures outgoing emails in a plain-text file."""

    name = "log_file"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _append(self, entry: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(entry)

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        from_email: str,
        from_name: str,
    ) -> bool:
        entry = (
            "\n--- EMAIL ---\n"
            f"FROM: {from_name} <{from_email}>\n"
            f"TO: {to}\n"
            f"SUBJECT: {subject}\n"
            f"{html_body}\n"
            "-------------\n"
        )
        await asyncio.to_thread(self._append, entry)
        return True
