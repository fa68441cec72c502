"""Caller identity from trusted gateway headers."""

from uuid import UUID

from fastapi import Header, HTTPException, status

from group_sessions.domain.models import Actor, Role


async def require_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    """Build the acting user from headers set by the auth gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        return Actor(user_id=UUID(x_user_id), role=Role(x_user_role.strip().lower()))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc
