"""
auth/errors.py -- Closed set of authentication error variants.

AuthService operations return one of these as a value instead of raising.
Callers branch with isinstance(result, AuthError); api/errors.py is the only
place that turns a variant into an HTTP status code.

MailDeliveryError is different: it is an infrastructure failure (SMTP down,
timeout), not an answer to the caller's input, so it is raised.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthError:
    message: str


@dataclass(frozen=True)
class BadRequest(AuthError):
    """Missing or malformed input, duplicate email, wrong verification token."""


@dataclass(frozen=True)
class Unauthenticated(AuthError):
    """Bad credentials, unverified account, or revoked session."""


class MailDeliveryError(Exception):
    """The verification email could not be handed to the mail server."""
