"""
auth/tokens.py -- JWT, password hashing, random secrets, and cookie helpers.

Security design decisions:
  JWT: python-jose with HS256. Every token embeds the TokenUser projection,
       a "type" claim ("access", "refresh" or "session") and an issue time.
       Decoding checks the type so a refresh token can never be presented as
       an access token. Verification returns None on any failure -- the
       dependency layer turns that into a 401.

  Passwords: bcrypt, used directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate() so response time does not reveal
       whether an email is registered [C1].

  Secrets: secrets.token_hex(40) gives 320 bits of entropy for both email
       verification tokens and session refresh secrets. Hex is URL-safe, so
       verification tokens go straight into the link query string.

  Cookies: httpOnly, samesite=lax, secure when SECURE_COOKIES=true. Logout
       overwrites each cookie with the value "logout" and an expiry that has
       already passed, so the browser drops it immediately.

Layer rule: no imports from api/. Import from core/ is allowed -- core/ is the
kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import TokenUser
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("authkeeper.auth")

_ALGORITHM = "HS256"

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
SESSION_COOKIE = "token"  # stateless mode

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt truncates input past 72 bytes; the API layer caps passwords at
    128 characters, and bcrypt 4.x rejects over-long input outright rather
    than silently truncating, so the encoded value is clipped here.
    """
    return bcrypt.hashpw(plain.encode("utf-8")[:72], bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones [C1].
_DUMMY_HASH: str = hash_password("authkeeper_timing_dummy")


def authenticate(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization [C1].

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the User on a password match (verified or not -- the caller
    decides what an unverified account may do), None otherwise.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Random secrets
# ---------------------------------------------------------------------------


def generate_verification_token() -> str:
    """Return a single-use email verification token (80 hex chars)."""
    return secrets.token_hex(40)


def generate_refresh_secret() -> str:
    """Return a fresh session refresh secret (80 hex chars)."""
    return secrets.token_hex(40)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def _encode(token_user: TokenUser, token_type: str, expire_seconds: int, **extra) -> str:
    issued = datetime.now(timezone.utc)
    payload = {
        "sub": str(token_user.user_id),
        "user": token_user.to_claims(),
        "type": token_type,
        "iat": issued,
        # iat has one-second resolution; issued_at keeps microseconds so two
        # tokens minted in the same second are still distinguishable.
        "issued_at": issued.isoformat(),
        "exp": issued + timedelta(seconds=expire_seconds),
        **extra,
    }
    return jwt.encode(payload, get_settings().secret_key, algorithm=_ALGORITHM)


def create_access_token(token_user: TokenUser, expire_seconds: int = 0) -> str:
    """Short-lived access credential. expire_seconds=0 uses ACCESS_TOKEN_EXPIRE_SECONDS."""
    duration = expire_seconds or get_settings().access_token_expire_seconds
    return _encode(token_user, "access", duration)


def create_refresh_token(token_user: TokenUser, refresh_secret: str, expire_seconds: int = 0) -> str:
    """Long-lived refresh credential carrying the raw session secret.

    The secret lets the authentication dependency match the cookie back to
    the stored Session record and reject it once that record is revoked.
    """
    duration = expire_seconds or get_settings().refresh_token_expire_seconds
    return _encode(token_user, "refresh", duration, refresh_token=refresh_secret)


def create_session_token(token_user: TokenUser, expire_seconds: int = 0) -> str:
    """Single long-lived credential for the stateless session mode."""
    duration = expire_seconds or get_settings().refresh_token_expire_seconds
    return _encode(token_user, "session", duration)


def decode_token(token: str, expected_type: str) -> dict | None:
    """Decode and verify a JWT of the given type. Returns the payload or None on any failure."""
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != expected_type or not isinstance(payload.get("user"), dict):
        return None
    if expected_type == "refresh" and not payload.get("refresh_token"):
        return None
    try:
        TokenUser.from_claims(payload["user"])
    except (KeyError, TypeError, ValueError):
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def _set_cookie(response, name: str, value: str, max_age: int) -> None:
    response.set_cookie(
        name,
        value=value,
        httponly=True,
        samesite="lax",
        secure=get_settings().secure_cookies,
        max_age=max_age,
    )


def set_session_cookies(response, access_token: str, refresh_token: str) -> None:
    """Attach the accessToken / refreshToken pair; each cookie lives as long as its JWT."""
    settings = get_settings()
    _set_cookie(response, ACCESS_COOKIE, access_token, settings.access_token_expire_seconds)
    _set_cookie(response, REFRESH_COOKIE, refresh_token, settings.refresh_token_expire_seconds)


def set_stateless_cookie(response, token: str) -> None:
    _set_cookie(response, SESSION_COOKIE, token, get_settings().refresh_token_expire_seconds)


def expire_session_cookies(response) -> None:
    """Overwrite every session cookie with an already-expired "logout" value."""
    expired = datetime.now(timezone.utc)
    for name in (ACCESS_COOKIE, REFRESH_COOKIE, SESSION_COOKIE):
        response.set_cookie(
            name,
            value="logout",
            httponly=True,
            samesite="lax",
            secure=get_settings().secure_cookies,
            expires=expired,
        )
