from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from config.settings import settings
from utils.masking import email_hint

log = logging.getLogger("foodshare.email")


class SmtpEmailClient:
    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 username: Optional[str] = None, password: Optional[str] = None,
                 sender: Optional[str] = None, use_tls: Optional[bool] = None):
        self.host = host or settings.SMTP_HOST
        if not self.host:
            raise RuntimeError("SMTP_HOST not configured")
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USERNAME
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.sender = sender or settings.EMAIL_FROM
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls

    def build_message(self, to: str, subject: str, html: str, text: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        """Raises smtplib.SMTPException / OSError on failure; the queue processor records it."""
        msg = self.build_message(to, subject, html, text)
        with smtplib.SMTP(self.host, self.port, timeout=settings.SMTP_TIMEOUT_SECONDS) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)
        log.info("email_sent", extra={"extra": {"event": "email_sent", "dest": email_hint(to)}})
