"""
api/routes/v1/sessions.py -- Session administration (admin only).

Routes:
  GET    /api/v1/auth/sessions                   -- list session records
  POST   /api/v1/auth/sessions/{user_id}/revoke  -- mark a session invalid
  DELETE /api/v1/auth/sessions/{user_id}         -- clear a session record

Revoking keeps the record with is_valid=0, which blocks the user's logins
and refresh cookies. Clearing deletes it; the next login starts a new session.
Both return 404 in stateless mode, where no session records exist.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from api.models import MessageResponse, SessionResponse
from auth.dependencies import get_auth_service, require_admin
from auth.models import TokenUser
from auth.service import AuthService

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": "not_found", "message": "No session for that user."},
    )


@router.get("/auth/sessions", response_model=list[SessionResponse])
def list_sessions(
    current_user: TokenUser = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
) -> list[SessionResponse]:
    if service.stateless:
        return []
    return [SessionResponse.from_session(s) for s in service.sessions.list_sessions()]


@router.post("/auth/sessions/{user_id}/revoke", response_model=MessageResponse)
def revoke_session(
    user_id: int,
    current_user: TokenUser = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    if not service.revoke_session(user_id):
        raise _not_found()
    return MessageResponse(message="Session revoked.")


@router.delete("/auth/sessions/{user_id}", status_code=204)
def clear_session(
    user_id: int,
    current_user: TokenUser = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
) -> Response:
    if not service.clear_session(user_id):
        raise _not_found()
    return Response(status_code=204)
