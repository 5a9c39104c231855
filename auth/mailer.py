"""
auth/mailer.py -- Verification email dispatch over SMTP.

The HTML body is rendered from auth/templates/verify_email.html with Jinja2
(autoescaped -- the user's display name ends up in the markup). A plain-text
alternative part is always attached for clients that do not render HTML.

SMTP is bounded by EMAIL_TIMEOUT_SECONDS. Any SMTP or socket failure is
logged and re-raised as MailDeliveryError; the caller decides what the user
is told. Nothing here retries.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from urllib.parse import urlencode

from jinja2 import Environment, FileSystemLoader, select_autoescape

from auth.errors import MailDeliveryError
from core.config import Settings

logger = logging.getLogger("authkeeper.auth.mailer")

_templates = Environment(
    loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
    autoescape=select_autoescape(["html"]),
)


def build_verify_url(origin: str, email: str, verification_token: str) -> str:
    """Front-end page that posts {email, verificationToken} back to /auth/verify-email."""
    query = urlencode({"token": verification_token, "email": email})
    return f"{origin.rstrip('/')}/user/verify-email?{query}"


class SmtpMailer:
    """Sends account emails through the configured SMTP relay.

    Usage:
        mailer = SmtpMailer(get_settings())
        mailer.send_verification_email(email=..., name=..., verification_token=..., origin=...)
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send_verification_email(self, *, email: str, name: str, verification_token: str, origin: str) -> None:
        verify_url = build_verify_url(origin, email, verification_token)
        msg = EmailMessage()
        msg["Subject"] = "Email Confirmation"
        msg["From"] = self.settings.mail_from
        msg["To"] = email
        msg.set_content(f"Hello, {name}\n\nPlease confirm your email address by visiting:\n{verify_url}\n")
        msg.add_alternative(
            _templates.get_template("verify_email.html").render(name=name, verify_url=verify_url),
            subtype="html",
        )
        self._send(msg)

    def _send(self, msg: EmailMessage) -> None:
        cfg = self.settings
        try:
            with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.email_timeout_seconds) as smtp:
                if cfg.smtp_use_tls:
                    smtp.starttls()
                if cfg.smtp_user:
                    smtp.login(cfg.smtp_user, cfg.smtp_password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP send to %s failed: %s", msg["To"], exc)
            raise MailDeliveryError(str(exc)) from exc
        logger.info("Verification email sent to %s", msg["To"])
