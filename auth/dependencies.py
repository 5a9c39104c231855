"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Stateful mode checks, in priority order:
  1. accessToken cookie -- set by POST /auth/login.
  2. Authorization: Bearer <access JWT> header -- non-browser clients.
  3. refreshToken cookie -- only when no usable access token was presented.
     The embedded secret must match the user's current valid session record
     (AuthService.renew). On success a fresh cookie pair is attached to the
     response, so an expired access cookie is renewed transparently.

Stateless mode checks the single "token" cookie.

All paths converge on a TokenUser.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
require_admin() wraps get_current_user() and raises HTTP 403 if not admin.

Layer rule: may import from fastapi (Depends/HTTPException/Request) because
this module is part of the FastAPI dependency injection system; no imports
from api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, Response

from auth.errors import AuthError
from auth.models import TokenUser
from auth.service import AuthService
from auth.tokens import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    SESSION_COOKIE,
    decode_token,
    set_session_cookies,
)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def try_get_current_user(request: Request, response: Response | None = None) -> TokenUser | None:
    """Authenticate the request. Returns None on any failure; never raises."""
    service = get_auth_service(request)

    if service.stateless:
        payload = decode_token(request.cookies.get(SESSION_COOKIE, ""), "session")
        return TokenUser.from_claims(payload["user"]) if payload else None

    token: str | None = request.cookies.get(ACCESS_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    if token:
        payload = decode_token(token, "access")
        if payload:
            return TokenUser.from_claims(payload["user"])

    renewed = service.renew(request.cookies.get(REFRESH_COOKIE))
    if isinstance(renewed, AuthError):
        return None
    if response is not None:
        set_session_cookies(response, renewed.access_token, renewed.refresh_token)
    return renewed.user


def get_current_user(request: Request, response: Response) -> TokenUser:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: TokenUser = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request, response)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthenticated", "message": "Authentication required."},
        )
    return user


def require_admin(request: Request, response: Response) -> TokenUser:
    """Require admin role. Raises HTTP 401 if unauthenticated, HTTP 403 if not admin."""
    user = get_current_user(request, response)
    if user.role != "admin":
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Admin access required."},
        )
    return user
