"""Tests for EmailNotifier."""

import smtplib
from typing import Any

import pytest

from orderbot.notifiers.base import NotificationError
from orderbot.notifiers.email import XLSX_MIME_TYPE, EmailNotifier


def _notifier(**overrides: Any) -> EmailNotifier:
    kwargs = dict(
        host="smtp.example.com",
        port=465,
        from_address="bot@example.com",
        to_addresses=["to@example.com", "ops@example.com"],
    )
    kwargs.update(overrides)
    return EmailNotifier(**kwargs)


class TestEmailNotifier:
    """Email notifier tests."""

    def test_send_over_ssl_by_default(self, mocker: Any) -> None:
        ssl_mock = mocker.patch("smtplib.SMTP_SSL")
        plain_mock = mocker.patch("smtplib.SMTP")
        conn_mock = ssl_mock.return_value.__enter__.return_value

        _notifier().send("Hello", subject="Report")

        ssl_mock.assert_called_once_with("smtp.example.com", 465, timeout=30)
        plain_mock.assert_not_called()
        conn_mock.starttls.assert_not_called()
        conn_mock.send_message.assert_called_once()

    def test_send_starttls(self, mocker: Any) -> None:
        smtp_mock = mocker.patch("smtplib.SMTP")
        conn_mock = smtp_mock.return_value.__enter__.return_value

        _notifier(port=587, use_ssl=False, use_tls=True).send("Hello")

        conn_mock.starttls.assert_called_once()
        conn_mock.send_message.assert_called_once()

    def test_send_with_auth(self, mocker: Any) -> None:
        smtp_mock = mocker.patch("smtplib.SMTP_SSL")
        conn_mock = smtp_mock.return_value.__enter__.return_value

        _notifier(username="user", password="pass").send("Hello")

        conn_mock.login.assert_called_once_with("user", "pass")

    def test_headers(self) -> None:
        message = _notifier(subject_prefix="Orders").build_message(
            "Body", subject="Daily"
        )

        assert message["Subject"] == "Orders | Daily"
        assert "Order Bot" in message["From"]
        assert "<bot@example.com>" in message["From"]
        assert message["To"] == "to@example.com, ops@example.com"

    def test_xlsx_attachment(self, tmp_path) -> None:
        report = tmp_path / "unfulfilled-bangalore-orders-2024-01-01.xlsx"
        report.write_bytes(b"PK\x03\x04fake")

        message = _notifier().build_message("Body", attachments=[report])

        attachments = list(message.iter_attachments())
        assert len(attachments) == 1
        assert attachments[0].get_content_type() == XLSX_MIME_TYPE
        assert attachments[0].get_filename() == report.name
        assert attachments[0].get_content() == b"PK\x03\x04fake"

    def test_send_with_html(self) -> None:
        message = _notifier().build_message(text="Plain", html="<p>HTML</p>")

        assert message.is_multipart()
        parts = message.get_payload()
        assert [p.get_content_type() for p in parts] == ["text/plain", "text/html"]

    def test_missing_attachment_raises(self, tmp_path, mocker: Any) -> None:
        mocker.patch("smtplib.SMTP_SSL")

        with pytest.raises(NotificationError, match="cannot read attachment"):
            _notifier().send("Hello", attachments=[tmp_path / "missing.xlsx"])

    def test_smtp_failure_raises(self, mocker: Any) -> None:
        smtp_mock = mocker.patch("smtplib.SMTP_SSL")
        conn_mock = smtp_mock.return_value.__enter__.return_value
        conn_mock.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad")

        with pytest.raises(NotificationError, match="Email notification failed"):
            _notifier(username="u", password="p").send("Hello")

    def test_send_no_recipients(self) -> None:
        """Raise when no recipients configured."""
        with pytest.raises(NotificationError, match="no recipients configured"):
            _notifier(to_addresses=[]).send("Hello")

    def test_repr_hides_password(self) -> None:
        assert "hunter2" not in repr(_notifier(password="hunter2"))
