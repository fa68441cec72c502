"""Request and response payloads for the HTTP API."""

from pydantic import BaseModel

from group_sessions.domain.sessions import GroupSession, SessionStatus


class StatusChangeRequest(BaseModel):
    """Body of an explicit status change."""

    status: SessionStatus


class SessionPayload(BaseModel):
    """Serialized view of a group session."""

    id: str
    therapist_id: str
    title: str
    description: str | None = None
    scheduled_at: str
    duration_minutes: int
    max_participants: int
    status: SessionStatus
    ended_at: str | None = None
    reminder_sent: bool
    starting_sent: bool
    room_name: str | None = None
    room_url: str | None = None

    @classmethod
    def from_session(cls, session: GroupSession) -> "SessionPayload":
        return cls(
            id=str(session.id),
            therapist_id=str(session.therapist_id),
            title=session.title,
            description=session.description,
            scheduled_at=session.scheduled_at.isoformat(),
            duration_minutes=session.duration_minutes,
            max_participants=session.max_participants,
            status=session.status,
            ended_at=session.ended_at.isoformat() if session.ended_at else None,
            reminder_sent=session.reminder_sent,
            starting_sent=session.starting_sent,
            room_name=session.room_name,
            room_url=session.room_url,
        )
