"""
api/errors.py -- Boundary translator from AuthError values to HTTP responses.

AuthService never raises for domain failures; routes check the result with
isinstance(result, AuthError) and hand the value to error_response(). This is
the only place that knows which status code each variant maps to.
"""

from __future__ import annotations

from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse
from auth.errors import AuthError, BadRequest, Unauthenticated

_STATUS: dict[type[AuthError], tuple[int, str]] = {
    BadRequest: (400, "bad_request"),
    Unauthenticated: (401, "unauthenticated"),
}


def error_response(error: AuthError) -> JSONResponse:
    """Render an AuthError as the standard ErrorResponse envelope."""
    status_code, code = _STATUS[type(error)]
    resp = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=error.message)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
