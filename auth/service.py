"""
auth/service.py -- AuthService: register, login, logout, verify-email.

Composes UserStore, SessionStore, the token helpers and the mailer into the
account and session lifecycle. Route handlers call these methods and nothing
else; they never touch the stores directly for these flows.

Return convention:
  Every operation returns a result dataclass on success or an AuthError value
  (BadRequest / Unauthenticated) on a domain failure. Nothing here raises for
  bad input or bad credentials. MailDeliveryError is the one exception that
  propagates -- it reports an outage, not a caller mistake.

Login and the session record:
  1. No session for the user  -> mint a secret, store a Valid session.
  2. Valid session            -> reuse its secret (no rotation).
  3. Invalid (revoked) session -> refuse the login until an admin clears it.
  If two logins race on step 1, UNIQUE(user_id) fails one insert; that
  request re-reads the winner's record and continues from step 2/3.

Credential errors:
  Unknown email and wrong password both return "Invalid Credentials". Only an
  unverified account (correct password) gets a different message.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from auth.errors import AuthError, BadRequest, Unauthenticated
from auth.models import Session, TokenUser, User, create_token_user
from auth.sessions import SessionStore
from auth.store import UserStore, now_iso
from auth.tokens import (
    authenticate,
    create_access_token,
    create_refresh_token,
    create_session_token,
    decode_token,
    generate_refresh_secret,
    generate_verification_token,
    hash_password,
)
from core.config import Settings

logger = logging.getLogger("authkeeper.auth.service")

_INVALID_CREDENTIALS = "Invalid Credentials"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MessageResult:
    message: str


@dataclass(frozen=True)
class RegisterResult:
    message: str
    user: User


@dataclass(frozen=True)
class LoginResult:
    """Credentials to hand back as cookies.

    Stateful mode fills access_token + refresh_token; stateless mode fills
    session_token only.
    """

    user: TokenUser
    access_token: str | None = None
    refresh_token: str | None = None
    session_token: str | None = None


def normalize_email(raw_email: str | None) -> str:
    return (raw_email or "").strip().lower()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AuthService:
    """Account and session lifecycle.

    sessions may be None only in stateless mode, where no session record is
    ever read or written.
    """

    def __init__(self, users: UserStore, sessions: SessionStore | None, mailer, settings: Settings) -> None:
        if sessions is None and settings.session_mode == "stateful":
            raise ValueError("Stateful session mode requires a SessionStore")
        self.users = users
        self.sessions = sessions
        self.mailer = mailer
        self.settings = settings

    @property
    def stateless(self) -> bool:
        return self.settings.session_mode == "stateless"

    # ------------------------------------------------------------------
    # Registration and verification
    # ------------------------------------------------------------------

    def register(
        self, email: str | None, name: str | None, password: str | None, origin: str | None = None
    ) -> RegisterResult | AuthError:
        """Create an unverified account and email it a verification token.

        The account is committed before the email goes out. If delivery fails
        MailDeliveryError propagates and the account stays; the user can ask
        for another email through resend_verification().
        """
        email = normalize_email(email)
        name = (name or "").strip()
        if not email or not name or not password:
            return BadRequest("Please provide name, email and password")

        if self.users.get_by_email(email) is not None:
            return BadRequest("Email already exists")

        candidate = User(
            email=email,
            name=name,
            hashed_password=hash_password(password),
            verification_token=generate_verification_token(),
        )
        try:
            user = self.users.create_user(candidate)
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email.
            return BadRequest("Email already exists")
        logger.info("Registered user_id=%d role=%s", user.id, user.role)

        self._send_verification(user, origin)
        return RegisterResult(message="Success! Please check your email to verify account", user=user)

    def resend_verification(self, email: str | None, origin: str | None = None) -> MessageResult | AuthError:
        """Send the pending verification token again.

        The reply is the same whether or not the email belongs to an
        unverified account, so this cannot be used to probe for users.
        """
        email = normalize_email(email)
        if not email:
            return BadRequest("Please provide email")
        user = self.users.get_by_email(email)
        if user is not None and not user.is_verified and user.verification_token:
            self._send_verification(user, origin)
        return MessageResult("If that account is awaiting verification, a new email has been sent")

    def verify_email(self, email: str | None, verification_token: str | None) -> MessageResult | AuthError:
        email = normalize_email(email)
        if not email or not verification_token:
            return BadRequest("Please provide email and token")

        user = self.users.get_by_email(email)
        if user is None:
            return BadRequest("No user found with that email")

        # A consumed token is stored as "" and must never match.
        stored = user.verification_token
        if not stored or not hmac.compare_digest(stored.encode(), verification_token.encode()):
            logger.info("Rejected verification attempt for user_id=%d", user.id)
            return BadRequest("Unable to access")

        user.is_verified = True
        user.verified_at = now_iso()
        user.verification_token = ""
        self.users.save(user)
        logger.info("Verified email for user_id=%d", user.id)
        return MessageResult("email verified")

    def _send_verification(self, user: User, origin: str | None) -> None:
        self.mailer.send_verification_email(
            email=user.email,
            name=user.name,
            verification_token=user.verification_token,
            origin=origin or self.settings.origin_url,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(
        self, email: str | None, password: str | None, ip: str | None = None, user_agent: str | None = None
    ) -> LoginResult | AuthError:
        email = normalize_email(email)
        if not email or not password:
            return BadRequest("Please provide email and password")

        user = authenticate(self.users, email, password)
        if user is None:
            logger.info("Failed login (bad credentials)")
            return Unauthenticated(_INVALID_CREDENTIALS)
        if not user.is_verified:
            logger.info("Failed login for user_id=%d (unverified)", user.id)
            return Unauthenticated("Please verify your account")

        token_user = create_token_user(user)
        if self.stateless:
            return LoginResult(
                user=token_user,
                session_token=create_session_token(token_user, self.settings.refresh_token_expire_seconds),
            )

        session = self._obtain_session(user.id, ip, user_agent)
        if isinstance(session, AuthError):
            logger.warning("Refused login for user_id=%d (revoked session)", user.id)
            return session
        logger.info("Login for user_id=%d", user.id)
        return self._issue(token_user, session.refresh_token)

    def _obtain_session(self, user_id: int, ip: str | None, user_agent: str | None) -> Session | AuthError:
        existing = self.sessions.find_by_user(user_id)
        if existing is None:
            try:
                return self.sessions.create(user_id, generate_refresh_secret(), ip, user_agent)
            except IntegrityError:
                existing = self.sessions.find_by_user(user_id)
                if existing is None:
                    raise
        if not existing.is_valid:
            return Unauthenticated("Invalid credentials")
        return existing

    def _issue(self, token_user: TokenUser, refresh_secret: str) -> LoginResult:
        return LoginResult(
            user=token_user,
            access_token=create_access_token(token_user, self.settings.access_token_expire_seconds),
            refresh_token=create_refresh_token(token_user, refresh_secret, self.settings.refresh_token_expire_seconds),
        )

    def renew(self, refresh_token: str | None) -> LoginResult | AuthError:
        """Exchange a refresh cookie for a fresh credential pair.

        The cookie's embedded secret must equal the secret of the user's
        current, valid session record. A revoked, deleted or replaced session
        makes every outstanding refresh cookie for it useless.
        """
        if self.stateless or not refresh_token:
            return Unauthenticated("Authentication required")
        payload = decode_token(refresh_token, "refresh")
        if payload is None:
            return Unauthenticated("Authentication required")

        user_id = int(payload["user"]["user_id"])
        session = self.sessions.find_by_user(user_id)
        if session is None or not session.is_valid:
            return Unauthenticated("Authentication required")
        if not hmac.compare_digest(session.refresh_token.encode(), payload["refresh_token"].encode()):
            logger.warning("Refresh secret mismatch for user_id=%d", user_id)
            return Unauthenticated("Authentication required")

        user = self.users.get_by_id(user_id)
        if user is None:
            return Unauthenticated("Authentication required")
        return self._issue(create_token_user(user), session.refresh_token)

    def logout(self, user_id: int) -> MessageResult:
        """End the caller's server-side session according to LOGOUT_POLICY.

        Cookies are expired by the HTTP layer. An access token the client
        kept elsewhere stays usable until its own short expiry.
        """
        if not self.stateless:
            if self.settings.logout_policy == "invalidate":
                self.sessions.mark_invalid(user_id)
            else:
                self.sessions.delete_by_user(user_id)
        logger.info("Logout for user_id=%d (policy=%s)", user_id, self.settings.logout_policy)
        return MessageResult("user logged out!")

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def revoke_session(self, user_id: int) -> bool:
        """Mark the user's session invalid. Blocks their logins until cleared."""
        if self.stateless:
            return False
        revoked = self.sessions.mark_invalid(user_id)
        if revoked:
            logger.warning("Session revoked for user_id=%d", user_id)
        return revoked

    def clear_session(self, user_id: int) -> bool:
        """Delete the user's session record, lifting any revocation."""
        if self.stateless:
            return False
        cleared = self.sessions.delete_by_user(user_id)
        if cleared:
            logger.info("Session cleared for user_id=%d", user_id)
        return cleared
