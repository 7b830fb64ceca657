"""
notify/sender.py -- Fire-and-forget email delivery for one-time codes.

Two senders share the same send(subject, body, destination) shape:

  SMTPSender:    delivers through an SMTP relay on a daemon thread. The
                 caller returns immediately; the connection is bounded by
                 smtp_timeout_seconds and any failure is logged, never raised.

  ConsoleSender: logs the message instead of sending it. Used when no SMTP
                 host is configured (local development).

build_sender() picks one from Settings.
"""

from __future__ import annotations

import logging
import smtplib
import threading
from email.message import EmailMessage
from typing import Protocol

from core.config import Settings

logger = logging.getLogger("vaultauth.notify")


class Sender(Protocol):
    def send(self, subject: str, body: str, destination: str) -> None: ...


class SMTPSender:
    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        from_addr: str = "",
        timeout: float = 5.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_addr = from_addr
        self.timeout = timeout

    def send(self, subject: str, body: str, destination: str) -> None:
        """Queue the message on a daemon thread and return immediately."""
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.from_addr
        message["To"] = destination
        message.set_content(body)
        thread = threading.Thread(target=self._deliver, args=(message,), daemon=True)
        thread.start()

    def _deliver(self, message: EmailMessage) -> None:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
            logger.debug("Email delivered to %s", message["To"])
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Email delivery to %s failed: %s", message["To"], exc)


class ConsoleSender:
    """Development sender -- writes the message to the log."""

    def send(self, subject: str, body: str, destination: str) -> None:
        logger.info("Email to %s -- %s: %s", destination, subject, body)


def build_sender(settings: Settings) -> Sender:
    if not settings.smtp_host:
        logger.warning("SMTP_HOST not set -- one-time codes will be written to the log")
        return ConsoleSender()
    return SMTPSender(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        from_addr=settings.smtp_sender,
        timeout=settings.smtp_timeout_seconds,
    )
