"""Domain models for session lifecycle transitions."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from group_sessions.domain.sessions import ParticipantUpdate, SessionStatus


class TransitionKind(StrEnum):
    """Named transitions, used as sweep counters and audit payloads."""

    STARTED = "started"
    NO_SHOW = "no_show"
    COMPLETED = "completed"
    STALE_CANCELLED = "stale_cancelled"
    WENT_LIVE = "went_live"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Transition:
    """A status change to apply with a conditional write."""

    kind: TransitionKind
    from_status: SessionStatus
    to_status: SessionStatus
    ended_at: datetime | None = None
    clear_room: bool = False
    participant_updates: tuple[ParticipantUpdate, ...] = ()


@dataclass(frozen=True)
class SessionQuery:
    """Bounded selection of sessions for a sweep.

    Both bounds are inclusive. Callers apply their exact guards to the rows
    this returns.
    """

    statuses: frozenset[SessionStatus]
    scheduled_from: datetime | None = None
    scheduled_to: datetime | None = None
    unsent_flag: str | None = None
