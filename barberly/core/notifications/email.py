"""
E-mail Sending

SMTP delivery through smtplib, run in a worker thread so the event loop
is never blocked. `send_email` reports failure as False; the dispatcher
also treats a raised exception as a failed attempt.
"""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..config import SmtpSettings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


class EmailSender(ABC):
    @abstractmethod
    async def send_email(self, to: str, subject: str, html_body: str) -> bool:
        ...


class SmtpEmailSender(EmailSender):
    """Service for sending e-mails via SMTP."""

    def __init__(self, settings: SmtpSettings):
        self.settings = settings

    def send_email_sync(self, to: str, subject: str, html_body: str) -> bool:
        """Send via SMTP (blocking; call through asyncio.to_thread)."""
        if not self.settings.is_complete:
            logger.warning("SMTP settings are incomplete; e-mail not sent")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.settings.from_name} <{self.settings.from_email}>"
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.settings.host, self.settings.port, timeout=SMTP_TIMEOUT_SECONDS) as server:
                if self.settings.use_tls:
                    server.starttls()
                if self.settings.username and self.settings.password:
                    server.login(self.settings.username, self.settings.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send e-mail to {to}: {e}")
            return False

        logger.info(f"E-mail sent to {to}")
        return True

    async def send_email(self, to: str, subject: str, html_body: str) -> bool:
        return await asyncio.to_thread(self.send_email_sync, to, subject, html_body)
