"""Outbound email.

Mail is best-effort: without SMTP settings nothing is sent, and a failed send
is logged and dropped so it never changes an HTTP response.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from fastapi import Depends

from app.config import Settings, get_app_settings

logger = logging.getLogger("simple8_auth.mail")


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


class NullMailer:
    """Used when SMTP is not configured."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.debug("SMTP not configured, dropping mail to %s: %s", to, subject)


class SmtpMailer:
    """Sends plain-text mail through an SMTP relay."""

    def __init__(self, host: str, port: int, user: str, password: str, sender: str, timeout: float = 10.0) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.timeout = timeout

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(self, to: str, subject: str, body: str) -> None:
        """Send a message. Failures are logged, never raised."""
        msg = self.build_message(to, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
                smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send mail to %s (%s)", to, subject)
            return
        logger.info("Mail sent to %s: %s", to, subject)


def build_mailer(settings: Settings) -> Mailer:
    """Pick the SMTP mailer when fully configured, otherwise the no-op one."""
    if not settings.smtp_configured:
        return NullMailer()
    return SmtpMailer(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        user=settings.SMTP_USER,
        password=settings.SMTP_PASS,
        sender=settings.mail_sender,
    )


def get_mailer(settings: Settings = Depends(get_app_settings)) -> Mailer:
    """FastAPI dependency returning the mailer for the current settings."""
    return build_mailer(settings)
