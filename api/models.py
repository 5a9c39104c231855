"""
API request and response models for AuthKeeper REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields default to "" rather than being required: a missing email or
password is a BadRequest decided by AuthService (400 with a readable message),
not a schema failure (422). Length caps still apply here.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Session, TokenUser

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    email: str = Field(default="", max_length=255)
    name: str = Field(default="", max_length=100)
    password: str = Field(default="", max_length=128)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=128)


class VerifyEmailRequest(BaseModel):
    """Request body for POST /api/v1/auth/verify-email.

    The wire name is camelCase (verificationToken) to match the link the
    front end receives in the verification email.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(default="", max_length=255)
    verification_token: str = Field(default="", alias="verificationToken", max_length=255)


class ResendVerificationRequest(BaseModel):
    """Request body for POST /api/v1/auth/resend-verification."""

    email: str = Field(default="", max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class TokenUserResponse(BaseModel):
    """Public identity payload -- never carries hashes or tokens."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    name: str
    email: str
    role: str

    @classmethod
    def from_token_user(cls, token_user: TokenUser) -> "TokenUserResponse":
        return cls(
            user_id=token_user.user_id,
            name=token_user.name,
            email=token_user.email,
            role=token_user.role,
        )


class LoginResponse(BaseModel):
    """Response for POST /api/v1/auth/login. Credentials travel as cookies only."""

    model_config = ConfigDict(frozen=True)

    user: TokenUserResponse


class SessionResponse(BaseModel):
    """Admin view of a session record. The refresh secret is never exposed."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    is_valid: bool
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: str = ""

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            user_id=session.user_id,
            is_valid=session.is_valid,
            ip=session.ip,
            user_agent=session.user_agent,
            created_at=session.created_at or "",
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = {}
