"""Unit tests for auth/mailer.py -- verification link, message shape, SMTP failures."""

from unittest.mock import MagicMock

import pytest

from auth import mailer as mailer_module
from auth.errors import MailDeliveryError
from auth.mailer import SmtpMailer, build_verify_url
from helpers import make_settings


def test_build_verify_url_encodes_query() -> None:
    url = build_verify_url("https://app.example.com/", "a+b@example.com", "abc123")
    assert url == "https://app.example.com/user/verify-email?token=abc123&email=a%2Bb%40example.com"


@pytest.fixture
def smtp(monkeypatch) -> MagicMock:
    """Patch smtplib.SMTP; the returned mock is the connection used inside `with`."""
    factory = MagicMock()
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", factory)
    return factory


def test_send_builds_text_and_html_parts(smtp: MagicMock) -> None:
    settings = make_settings(smtp_host="mail.test", smtp_port=2525, smtp_user="u", smtp_password="p")
    SmtpMailer(settings).send_verification_email(
        email="alice@example.com", name="<Alice>", verification_token="tok", origin="http://front"
    )

    smtp.assert_called_once_with("mail.test", 2525, timeout=settings.email_timeout_seconds)
    conn = smtp.return_value.__enter__.return_value
    conn.starttls.assert_called_once()
    conn.login.assert_called_once_with("u", "p")

    msg = conn.send_message.call_args.args[0]
    assert msg["To"] == "alice@example.com"
    assert msg["Subject"] == "Email Confirmation"
    text = msg.get_body(preferencelist=("plain",)).get_content()
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "http://front/user/verify-email?token=tok" in text
    assert "&lt;Alice&gt;" in html


def test_no_login_without_credentials(smtp: MagicMock) -> None:
    SmtpMailer(make_settings(smtp_use_tls=False)).send_verification_email(
        email="a@example.com", name="A", verification_token="t", origin="http://front"
    )
    conn = smtp.return_value.__enter__.return_value
    conn.starttls.assert_not_called()
    conn.login.assert_not_called()


def test_socket_error_becomes_mail_delivery_error(smtp: MagicMock) -> None:
    smtp.side_effect = OSError("connection refused")
    with pytest.raises(MailDeliveryError):
        SmtpMailer(make_settings()).send_verification_email(
            email="a@example.com", name="A", verification_token="t", origin="http://front"
        )
