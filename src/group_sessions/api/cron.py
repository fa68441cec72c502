"""Sweep endpoints invoked by the external scheduler."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from group_sessions.config import parse_bearer_token
from group_sessions.domain.sweep import SweepKind

if TYPE_CHECKING:
    from group_sessions.containers import AppContainer

router = APIRouter(prefix="/cron", tags=["cron"])


def _get_cron_secret(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.cron_secret


async def require_cron_secret(
    authorization: str | None = Header(default=None),
    cron_secret: str = Depends(_get_cron_secret),
) -> None:
    """Ensure the caller presents the shared cron secret."""
    token = parse_bearer_token(authorization)
    if not token or token != cron_secret:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/check-session-status", dependencies=[Depends(require_cron_secret)])
async def check_session_status(request: Request) -> dict[str, object]:
    """Advance session statuses. Scheduled every 5 minutes."""
    container: AppContainer = request.app.state.container
    summary = await container.sweep_service.run(SweepKind.STATUS)
    return summary.to_dict()


@router.get("/session-reminders", dependencies=[Depends(require_cron_secret)])
async def session_reminders(request: Request) -> dict[str, object]:
    """Send 1-hour and 5-minute reminders. Scheduled every 15 minutes."""
    container: AppContainer = request.app.state.container
    summary = await container.sweep_service.run(SweepKind.REMINDERS)
    return summary.to_dict()
