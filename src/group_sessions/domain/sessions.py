"""Domain models for group sessions and their participants."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID


class SessionStatus(StrEnum):
    """Lifecycle status of a group session."""

    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


RUNNING_STATUSES = frozenset({SessionStatus.IN_PROGRESS, SessionStatus.LIVE})
TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.NO_SHOW, SessionStatus.CANCELLED}
)


class ParticipantStatus(StrEnum):
    """Status of a single enrollment."""

    REGISTERED = "REGISTERED"
    CONFIRMED = "CONFIRMED"
    ATTENDED = "ATTENDED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class GroupSession:
    """Represents a persisted group therapy session."""

    id: UUID
    therapist_id: UUID
    title: str
    description: str | None
    scheduled_at: datetime
    duration_minutes: int
    max_participants: int
    status: SessionStatus
    ended_at: datetime | None = None
    reminder_sent: bool = False
    starting_sent: bool = False
    room_name: str | None = None
    room_url: str | None = None

    @property
    def nominal_end(self) -> datetime:
        """Scheduled start plus the planned duration."""
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class Participant:
    """Represents a user's enrollment in a session."""

    session_id: UUID
    user_id: UUID
    status: ParticipantStatus
    joined_at: datetime | None = None


@dataclass(frozen=True)
class ParticipantUpdate:
    """Bulk rewrite of participant statuses.

    ``from_status`` of ``None`` matches every participant that is not
    already cancelled.
    """

    from_status: ParticipantStatus | None
    to_status: ParticipantStatus


class EnrollOutcome(StrEnum):
    """Result of the store's atomic enroll operation."""

    ENROLLED = "ENROLLED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    FULL = "FULL"
    ALREADY_ENROLLED = "ALREADY_ENROLLED"


class CancelOutcome(StrEnum):
    """Result of the store's atomic enrollment cancellation."""

    CANCELLED = "CANCELLED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    TOO_LATE = "TOO_LATE"
