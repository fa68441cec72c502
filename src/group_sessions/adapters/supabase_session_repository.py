"""Supabase-backed session and participant repository.

Enrollment, cancellation and status transitions go through Postgres
functions (see ``supabase/migrations``) so that each check-then-write runs in
one transaction on the database, whichever replica calls it.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from group_sessions.domain.lifecycle import SessionQuery, Transition
from group_sessions.domain.sessions import (
    CancelOutcome,
    EnrollOutcome,
    GroupSession,
    Participant,
    ParticipantStatus,
    SessionStatus,
)
from group_sessions.services.sessions import SessionRepository

_SESSION_COLUMNS = (
    "id, therapist_id, title, description, scheduled_at, duration_minutes, "
    "max_participants, status, ended_at, reminder_sent, starting_sent, "
    "room_name, room_url"
)
_PARTICIPANT_COLUMNS = "session_id, user_id, status, joined_at"
_MILESTONE_FLAGS = {"reminder_sent", "starting_sent"}


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for group sessions."""

    client: Client

    def get_session(self, session_id: UUID) -> GroupSession | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("group_sessions")
            .select(_SESSION_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def list_sessions(self, query: SessionQuery, limit: int) -> list[GroupSession]:
        """Return sessions matching the query, oldest start first."""
        request = (
            self.client.table("group_sessions")
            .select(_SESSION_COLUMNS)
            .in_("status", sorted(status.value for status in query.statuses))
        )
        if query.scheduled_from is not None:
            request = request.gte("scheduled_at", query.scheduled_from.isoformat())
        if query.scheduled_to is not None:
            request = request.lte("scheduled_at", query.scheduled_to.isoformat())
        if query.unsent_flag is not None:
            request = request.eq(_flag_column(query.unsent_flag), False)
        response = request.order("scheduled_at", desc=False).limit(limit).execute()
        return [_parse_session(row) for row in response.data or []]

    def count_participants(self, session_ids: list[UUID]) -> dict[UUID, int]:
        """Return non-cancelled participant counts per session."""
        if not session_ids:
            return {}
        response = (
            self.client.table("session_participants")
            .select("session_id")
            .in_("session_id", [str(session_id) for session_id in session_ids])
            .neq("status", ParticipantStatus.CANCELLED.value)
            .execute()
        )
        counts = Counter(UUID(row["session_id"]) for row in response.data or [])
        return {session_id: counts.get(session_id, 0) for session_id in session_ids}

    def list_participants(self, session_id: UUID) -> list[Participant]:
        """Return every participant of a session."""
        response = (
            self.client.table("session_participants")
            .select(_PARTICIPANT_COLUMNS)
            .eq("session_id", str(session_id))
            .execute()
        )
        return [_parse_participant(row) for row in response.data or []]

    def get_participant(self, session_id: UUID, user_id: UUID) -> Participant | None:
        """Return one enrollment, if present."""
        response = (
            self.client.table("session_participants")
            .select(_PARTICIPANT_COLUMNS)
            .eq("session_id", str(session_id))
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_participant(response.data[0])

    def enroll_participant(self, session_id: UUID, user_id: UUID) -> EnrollOutcome:
        """Run the enroll_participant function and return its outcome."""
        response = self.client.rpc(
            "enroll_participant",
            {"p_session_id": str(session_id), "p_user_id": str(user_id)},
        ).execute()
        return EnrollOutcome(_scalar(response.data))

    def cancel_enrollment(
        self, session_id: UUID, user_id: UUID, cutoff: datetime
    ) -> CancelOutcome:
        """Run the cancel_enrollment function and return its outcome."""
        response = self.client.rpc(
            "cancel_enrollment",
            {
                "p_session_id": str(session_id),
                "p_user_id": str(user_id),
                "p_cutoff": cutoff.isoformat(),
            },
        ).execute()
        return CancelOutcome(_scalar(response.data))

    def apply_transition(self, session_id: UUID, transition: Transition) -> bool:
        """Run transition_group_session; false when the status already moved."""
        response = self.client.rpc(
            "transition_group_session",
            {
                "p_session_id": str(session_id),
                "p_expected_status": transition.from_status.value,
                "p_new_status": transition.to_status.value,
                "p_ended_at": (
                    transition.ended_at.isoformat() if transition.ended_at else None
                ),
                "p_clear_room": transition.clear_room,
                "p_participant_updates": [
                    {
                        "from": update.from_status.value if update.from_status else None,
                        "to": update.to_status.value,
                    }
                    for update in transition.participant_updates
                ],
            },
        ).execute()
        return bool(_scalar(response.data))

    def mark_milestone_sent(self, session_id: UUID, flag: str) -> bool:
        """Set a reminder flag only if it is still false."""
        column = _flag_column(flag)
        response = (
            self.client.table("group_sessions")
            .update({column: True, "updated_at": datetime.now(tz=UTC).isoformat()})
            .eq("id", str(session_id))
            .eq(column, False)
            .execute()
        )
        return bool(response.data)


def _flag_column(flag: str) -> str:
    if flag not in _MILESTONE_FLAGS:
        raise ValueError(f"Unknown milestone flag: {flag}")
    return flag


def _scalar(data: object) -> object:
    """Unwrap an RPC result that may come back as a list or a bare value."""
    if isinstance(data, list):
        if not data:
            raise RuntimeError("Empty response from Supabase function")
        data = data[0]
    if data is None:
        raise RuntimeError("Empty response from Supabase function")
    return data


def _parse_datetime(raw: object) -> datetime | None:
    if isinstance(raw, str) and raw:
        parsed = datetime.fromisoformat(raw)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def _parse_session(row: dict[str, object]) -> GroupSession:
    scheduled_at = _parse_datetime(row.get("scheduled_at"))
    if scheduled_at is None:
        raise RuntimeError(f"Session {row.get('id')} has no scheduled_at")
    return GroupSession(
        id=UUID(str(row["id"])),
        therapist_id=UUID(str(row["therapist_id"])),
        title=str(row.get("title") or ""),
        description=row.get("description"),
        scheduled_at=scheduled_at,
        duration_minutes=int(row["duration_minutes"]),
        max_participants=int(row["max_participants"]),
        status=SessionStatus(row["status"]),
        ended_at=_parse_datetime(row.get("ended_at")),
        reminder_sent=bool(row.get("reminder_sent")),
        starting_sent=bool(row.get("starting_sent")),
        room_name=row.get("room_name"),
        room_url=row.get("room_url"),
    )


def _parse_participant(row: dict[str, object]) -> Participant:
    return Participant(
        session_id=UUID(str(row["session_id"])),
        user_id=UUID(str(row["user_id"])),
        status=ParticipantStatus(row["status"]),
        joined_at=_parse_datetime(row.get("joined_at")),
    )
