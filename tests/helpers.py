"""
tests/helpers.py -- Test doubles and helpers shared by the unit and API tests.

Imported by conftest.py and directly by test modules. conftest.py sets DEBUG
before this module is first imported, so get_settings() can build a dev key.
"""

from __future__ import annotations

from auth.errors import MailDeliveryError
from auth.service import AuthService
from core.config import Settings, get_settings


class RecordingMailer:
    """In-memory replacement for SmtpMailer.

    Set fail=True to make every send raise MailDeliveryError, as an SMTP
    outage would.
    """

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send_verification_email(self, *, email: str, name: str, verification_token: str, origin: str) -> None:
        if self.fail:
            raise MailDeliveryError("SMTP unavailable")
        self.sent.append(
            {"email": email, "name": name, "verification_token": verification_token, "origin": origin}
        )

    def token_for(self, email: str) -> str:
        """Return the most recent verification token emailed to this address."""
        for message in reversed(self.sent):
            if message["email"] == email:
                return message["verification_token"]
        raise AssertionError(f"No verification email sent to {email}")


def make_settings(**overrides) -> Settings:
    """Settings sharing the process SECRET_KEY, so tokens decode with get_settings()."""
    base = {"debug": True, "secret_key": get_settings().secret_key}
    base.update(overrides)
    return Settings(**base)


def register_and_verify(service: AuthService, mailer: RecordingMailer, email: str, password: str = "s3cret-pass"):
    """Register, then verify with the emailed token. Returns the stored User."""
    service.register(email, email.split("@")[0].title(), password)
    service.verify_email(email, mailer.token_for(email))
    return service.users.get_by_email(email)
