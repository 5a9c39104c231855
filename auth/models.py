"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Stores and the
service do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

ROLES = ("admin", "user")


@dataclass
class User:
    """A registered identity.

    email is stored normalized (stripped, lower-cased) and is globally unique.
    role is decided once at creation -- the first registrant becomes "admin".

    verification_token is the single-use email verification secret. It is set
    at registration and cleared to "" when the email is verified; an empty
    token never matches a submitted one.
    """

    email: str
    name: str
    hashed_password: str
    role: str = "user"  # "admin", "user"
    id: int | None = None
    is_verified: bool = False
    verification_token: str = ""
    verified_at: str | None = None  # ISO 8601 UTC
    created_at: str | None = None


@dataclass
class Session:
    """Server-side refresh-token record. At most one per user.

    refresh_token is the raw random secret. It is embedded in the signed
    refreshToken cookie so the cookie can be matched back to this record.
    is_valid=False means the session was revoked; login is refused until an
    admin deletes the record.
    """

    user_id: int
    refresh_token: str
    ip: str | None = None
    user_agent: str | None = None
    is_valid: bool = True
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenUser:
    """Non-secret projection of a User embedded in cookies and responses."""

    user_id: int
    name: str
    email: str
    role: str

    def to_claims(self) -> dict:
        return asdict(self)

    @classmethod
    def from_claims(cls, claims: dict) -> TokenUser:
        return cls(
            user_id=int(claims["user_id"]),
            name=claims["name"],
            email=claims["email"],
            role=claims["role"],
        )


def create_token_user(user: User) -> TokenUser:
    """Project a User down to the fields safe to hand to a client."""
    return TokenUser(user_id=user.id, name=user.name, email=user.email, role=user.role)
