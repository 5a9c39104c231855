"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/auth/register             -- create unverified account; emails token
  POST /api/v1/auth/verify-email         -- consume verification token
  POST /api/v1/auth/resend-verification  -- email the pending token again
  POST /api/v1/auth/login                -- password login; sets session cookies
  POST /api/v1/auth/logout               -- ends session; expires cookies (requires auth)
  GET  /api/v1/auth/me                   -- current TokenUser (requires auth)

Handlers are plain def functions (run in the threadpool) because the stores
and bcrypt are blocking. Each one calls a single AuthService method and maps
an AuthError result through api.errors.error_response().

Security:
  [C1] AuthService.login() goes through authenticate() for timing
       equalization -- never inline get_by_email() + verify_password().
  [M5] Cache-Control: no-store on login and verify responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.errors import error_response
from api.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResendVerificationRequest,
    TokenUserResponse,
    VerifyEmailRequest,
)
from auth.dependencies import get_auth_service, get_current_user
from auth.errors import AuthError
from auth.models import TokenUser
from auth.service import AuthService
from auth.tokens import expire_session_cookies, set_session_cookies, set_stateless_cookie

# Auth policy:
# - POST /auth/register, /auth/verify-email, /auth/resend-verification, /auth/login: public
# - POST /auth/logout, GET /auth/me: requires auth (get_current_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=MessageResponse, status_code=201)
def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Create an account. The first account ever registered is the admin.

    No session is issued: the account cannot log in until its email is verified.
    """
    result = service.register(body.email, body.name, body.password)
    if isinstance(result, AuthError):
        return error_response(result)
    return JSONResponse(status_code=201, content=MessageResponse(message=result.message).model_dump())


@router.post("/auth/verify-email", response_model=MessageResponse)
def verify_email(body: VerifyEmailRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    result = service.verify_email(body.email, body.verification_token)
    if isinstance(result, AuthError):
        return error_response(result)
    resp = JSONResponse(content=MessageResponse(message=result.message).model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/resend-verification", response_model=MessageResponse)
def resend_verification(
    body: ResendVerificationRequest, service: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    result = service.resend_verification(body.email)
    if isinstance(result, AuthError):
        return error_response(result)
    return JSONResponse(content=MessageResponse(message=result.message).model_dump())


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Authenticate with email and password; set session cookies.

    Stateful mode sets accessToken + refreshToken, stateless mode sets token.
    The JSON body carries only the non-secret TokenUser.
    """
    result = service.login(
        body.email,
        body.password,
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    if isinstance(result, AuthError):
        return error_response(result)

    resp = JSONResponse(content=LoginResponse(user=TokenUserResponse.from_token_user(result.user)).model_dump())
    if result.session_token:
        set_stateless_cookie(resp, result.session_token)
    else:
        set_session_cookies(resp, result.access_token, result.refresh_token)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    response: Response,
    current_user: TokenUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """End the server-side session and overwrite the cookies with expired values.

    Must return a model (not a Response) so the expired cookies written to
    the injected response are merged into the reply.
    """
    result = service.logout(current_user.user_id)
    expire_session_cookies(response)
    return MessageResponse(message=result.message)


@router.get("/auth/me", response_model=TokenUserResponse)
def me(current_user: TokenUser = Depends(get_current_user)) -> TokenUserResponse:
    """Return identity information for the currently authenticated user."""
    return TokenUserResponse.from_token_user(current_user)
