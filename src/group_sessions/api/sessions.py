"""Enrollment and status endpoints for group sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from group_sessions.api.identity import require_actor
from group_sessions.api.schemas import SessionPayload, StatusChangeRequest
from group_sessions.domain.models import Actor  # noqa: TC001
from group_sessions.domain.results import ErrorKind

if TYPE_CHECKING:
    from group_sessions.containers import AppContainer

router = APIRouter(prefix="/sessions", tags=["sessions"])

ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FULL: status.HTTP_400_BAD_REQUEST,
    ErrorKind.TOO_LATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_ENROLLED: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_ELIGIBLE: status.HTTP_403_FORBIDDEN,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _respond(content: dict[str, object], error_kind: ErrorKind | None) -> JSONResponse:
    if error_kind is None:
        return JSONResponse(content)
    return JSONResponse(content, status_code=ERROR_STATUS_CODES[error_kind])


@router.post("/{session_id}/enrollment")
async def enroll(
    session_id: UUID, request: Request, actor: Actor = Depends(require_actor)
) -> JSONResponse:
    """Enroll the calling patient in a session."""
    container: AppContainer = request.app.state.container
    result = container.enrollment_service.enroll(session_id, actor)
    return _respond(
        {"success": result.success, "error_kind": result.error_kind},
        result.error_kind,
    )


@router.delete("/{session_id}/enrollment")
async def cancel_enrollment(
    session_id: UUID, request: Request, actor: Actor = Depends(require_actor)
) -> JSONResponse:
    """Withdraw the caller's enrollment."""
    container: AppContainer = request.app.state.container
    result = container.enrollment_service.cancel(session_id, actor)
    return _respond(
        {"success": result.success, "error_kind": result.error_kind},
        result.error_kind,
    )


@router.get("/{session_id}/enrollment")
async def enrollment_status(
    session_id: UUID, request: Request, actor: Actor = Depends(require_actor)
) -> JSONResponse:
    """Report whether the caller is enrolled."""
    container: AppContainer = request.app.state.container
    current = container.enrollment_service.status(session_id, actor.user_id)
    return _respond(
        {
            "enrolled": current.enrolled,
            "status": current.status,
            "error_kind": current.error_kind,
        },
        current.error_kind,
    )


@router.patch("/{session_id}/status")
async def set_status(
    session_id: UUID,
    payload: StatusChangeRequest,
    request: Request,
    actor: Actor = Depends(require_actor),
) -> JSONResponse:
    """Start, complete or cancel a session on behalf of its therapist."""
    container: AppContainer = request.app.state.container
    result = await container.session_service.set_status(
        session_id, payload.status, actor
    )
    session = (
        SessionPayload.from_session(result.session).model_dump(mode="json")
        if result.session
        else None
    )
    return _respond({"session": session, "error_kind": result.error_kind}, result.error_kind)
