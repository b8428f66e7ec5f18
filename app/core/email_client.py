# app/core/email_client.py
"""
Email transports for customer delivery emails.

Responsibilities:
  - Read SMTP configuration from Settings.
  - Provide a single send(...) method for services to use.
  - Support both TLS (STARTTLS) and SSL connections.

Typical .env configuration (Gmail example with App Password):

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USERNAME=shop@gmail.com
    SMTP_PASSWORD=<app password>
    SMTP_FROM_EMAIL=shop@gmail.com
    SMTP_FROM_NAME=Pop Playground Books
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true
"""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

from app.core.config import Settings

logger = logging.getLogger(__name__)


class SmtpMailer:
    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = settings.SMTP_PASSWORD
        # Fallback: if FROM_EMAIL is not set, default to username
        self.from_email = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME or ""
        self.from_name = settings.SMTP_FROM_NAME
        self.use_tls = settings.SMTP_USE_TLS
        self.use_ssl = settings.SMTP_USE_SSL

    def _create_smtp_client(self) -> smtplib.SMTP:
        """
        Create and return an SMTP client configured for TLS or SSL.

        Priority:
          - If SMTP_USE_SSL is True -> smtplib.SMTP_SSL (e.g., Gmail on 465).
          - Else -> smtplib.SMTP + optional STARTTLS if SMTP_USE_TLS is True.

        Typical configs:
          * SSL: SMTP_PORT=465, SMTP_USE_SSL=true,  SMTP_USE_TLS=false
          * TLS: SMTP_PORT=587, SMTP_USE_SSL=false, SMTP_USE_TLS=true
        """
        if not self.host:
            raise RuntimeError("SMTP_HOST is not configured. Please set it in .env.")

        if self.use_ssl:
            server: smtplib.SMTP = smtplib.SMTP_SSL(self.host, self.port, timeout=30)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=30)
            if self.use_tls:
                server.starttls()

        return server

    def send(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None:
        """
        Send an email to a single recipient.

        Raises
        ------
        RuntimeError:
            If required SMTP configuration is missing.
        smtplib.SMTPException, OSError:
            If the underlying SMTP connection or send fails.
        """
        if not (self.host and self.username and self.password):
            raise RuntimeError(
                "SMTP is not configured correctly. "
                "Please set SMTP_HOST, SMTP_USERNAME, and SMTP_PASSWORD in .env."
            )

        msg = EmailMessage()
        msg["From"] = (
            f"{self.from_name} <{self.from_email}>" if self.from_email else self.username
        )
        msg["To"] = to_email
        msg["Subject"] = subject

        # Always add a plain-text part
        msg.set_content(text_body)

        # Optional HTML alternative
        if html_body:
            msg.add_alternative(html_body, subtype="html")

        server = self._create_smtp_client()
        try:
            server.login(self.username, self.password)
            server.send_message(msg)
        finally:
            try:
                server.quit()
            except (smtplib.SMTPException, OSError):
                # Connection is being torn down anyway.
                pass


@dataclass
class SentEmail:
    to_email: str
    subject: str
    text_body: str
    html_body: str | None


class OutboxMailer:
    """
    Demo-mode transport: records messages instead of sending them.
    """

    def __init__(self):
        self.outbox: list[SentEmail] = []

    def send(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None:
        self.outbox.append(SentEmail(to_email, subject, text_body, html_body))
        logger.info("Demo mode: email to %s recorded (%s)", to_email, subject)
