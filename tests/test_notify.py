"""Unit tests for notify/sender.py -- email delivery.

smtplib.SMTP is patched out; nothing connects to a relay. SMTPSender hands
delivery to a daemon thread, so tests call _deliver() directly for the
delivery path and patch threading.Thread to check the hand-off.

Covers:
- SMTPSender builds the message and starts a daemon thread
- _deliver: STARTTLS, optional login, send; failures logged not raised
- ConsoleSender logs instead of sending
- build_sender picks the implementation from Settings
"""

from __future__ import annotations

import logging
import smtplib
from unittest.mock import MagicMock, patch

from core.config import Settings
from notify.sender import ConsoleSender, SMTPSender, build_sender


def _sender(**kwargs) -> SMTPSender:
    defaults = {"host": "smtp.test", "port": 587, "from_addr": "no-reply@vault.test", "timeout": 2.0}
    defaults.update(kwargs)
    return SMTPSender(**defaults)


class TestSMTPSender:
    def test_send_hands_off_to_daemon_thread(self) -> None:
        sender = _sender()
        with patch("notify.sender.threading.Thread") as thread_cls:
            sender.send("Subject", "Your code is 4321.", "user@example.com")

        thread_cls.assert_called_once()
        kwargs = thread_cls.call_args.kwargs
        assert kwargs["daemon"] is True
        message = kwargs["args"][0]
        assert message["To"] == "user@example.com"
        assert message["From"] == "no-reply@vault.test"
        assert message["Subject"] == "Subject"
        assert "4321" in message.get_content()
        thread_cls.return_value.start.assert_called_once()

    def test_deliver_with_login(self) -> None:
        sender = _sender(username="relay-user", password="relay-pass")
        with patch("notify.sender.smtplib.SMTP") as smtp_cls:
            sender._deliver(MagicMock())
        smtp_cls.assert_called_once_with("smtp.test", 587, timeout=2.0)
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("relay-user", "relay-pass")
        smtp.send_message.assert_called_once()

    def test_deliver_without_credentials_skips_login(self) -> None:
        sender = _sender()
        with patch("notify.sender.smtplib.SMTP") as smtp_cls:
            sender._deliver(MagicMock())
        smtp_cls.return_value.__enter__.return_value.login.assert_not_called()

    def test_deliver_failure_is_logged(self, caplog) -> None:
        sender = _sender()
        with patch("notify.sender.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
            with caplog.at_level(logging.WARNING, logger="vaultauth.notify"):
                sender._deliver(MagicMock())
        assert "failed" in caplog.text

    def test_deliver_network_error_is_logged(self, caplog) -> None:
        sender = _sender()
        with patch("notify.sender.smtplib.SMTP", side_effect=TimeoutError("timed out")):
            with caplog.at_level(logging.WARNING, logger="vaultauth.notify"):
                sender._deliver(MagicMock())
        assert "timed out" in caplog.text


class TestConsoleSender:
    def test_logs_message(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="vaultauth.notify"):
            ConsoleSender().send("Sign in", "Your code is 4321.", "user@example.com")
        assert "user@example.com" in caplog.text
        assert "4321" in caplog.text


class TestBuildSender:
    def test_console_when_no_host(self) -> None:
        settings = Settings(debug=True, smtp_host="")
        assert isinstance(build_sender(settings), ConsoleSender)

    def test_smtp_when_host_configured(self) -> None:
        settings = Settings(
            debug=True,
            smtp_host="mail.example.com",
            smtp_port=2525,
            smtp_username="u",
            smtp_password="p",
            smtp_sender="vault@example.com",
            smtp_timeout_seconds=4.0,
        )
        sender = build_sender(settings)
        assert isinstance(sender, SMTPSender)
        assert sender.host == "mail.example.com"
        assert sender.port == 2525
        assert sender.from_addr == "vault@example.com"
        assert sender.timeout == 4.0
