"""Session lifecycle state machine.

Pure decision logic: given a session, the current time and its live
participant count, return the transition to apply (if any). Every guard
checks the session's current status, so evaluating an already-transitioned
session again yields nothing.
"""

from datetime import datetime, timedelta

from group_sessions.domain.lifecycle import SessionQuery, Transition, TransitionKind
from group_sessions.domain.sessions import (
    RUNNING_STATUSES,
    GroupSession,
    ParticipantStatus,
    ParticipantUpdate,
    SessionStatus,
)

START_WINDOW = timedelta(minutes=5)
NO_SHOW_AFTER = timedelta(minutes=30)
COMPLETION_BUFFER = timedelta(minutes=15)
STALE_AFTER = timedelta(hours=24)

EXPLICIT_TARGETS = frozenset(
    {SessionStatus.LIVE, SessionStatus.COMPLETED, SessionStatus.CANCELLED}
)
SWEEP_TRANSITIONS = (
    TransitionKind.STARTED,
    TransitionKind.NO_SHOW,
    TransitionKind.COMPLETED,
    TransitionKind.STALE_CANCELLED,
)

_COMPLETION_UPDATES = (
    ParticipantUpdate(ParticipantStatus.CONFIRMED, ParticipantStatus.ATTENDED),
    ParticipantUpdate(ParticipantStatus.REGISTERED, ParticipantStatus.NO_SHOW),
)
_CANCELLATION_UPDATES = (ParticipantUpdate(None, ParticipantStatus.CANCELLED),)


class InvalidTransitionError(ValueError):
    """Raised when an operator requests a transition the lifecycle forbids."""


def decide(
    session: GroupSession, now: datetime, participant_count: int
) -> Transition | None:
    """Return the time-triggered transition due for a session, if any."""
    if session.status is SessionStatus.SCHEDULED:
        return _decide_scheduled(session, now, participant_count)
    if session.status in RUNNING_STATUSES:
        if now > session.nominal_end + COMPLETION_BUFFER:
            return Transition(
                kind=TransitionKind.COMPLETED,
                from_status=session.status,
                to_status=SessionStatus.COMPLETED,
                ended_at=session.nominal_end,
                participant_updates=_COMPLETION_UPDATES,
            )
    return None


def _decide_scheduled(
    session: GroupSession, now: datetime, participant_count: int
) -> Transition | None:
    elapsed = now - session.scheduled_at
    if participant_count == 0:
        if elapsed >= NO_SHOW_AFTER:
            return Transition(
                kind=TransitionKind.NO_SHOW,
                from_status=SessionStatus.SCHEDULED,
                to_status=SessionStatus.NO_SHOW,
            )
        return None
    if elapsed > STALE_AFTER:
        return Transition(
            kind=TransitionKind.STALE_CANCELLED,
            from_status=SessionStatus.SCHEDULED,
            to_status=SessionStatus.CANCELLED,
            participant_updates=_CANCELLATION_UPDATES,
        )
    if timedelta(0) <= elapsed < START_WINDOW:
        return Transition(
            kind=TransitionKind.STARTED,
            from_status=SessionStatus.SCHEDULED,
            to_status=SessionStatus.IN_PROGRESS,
        )
    return None


def explicit_transition(
    session: GroupSession, target: SessionStatus, now: datetime
) -> Transition:
    """Validate an operator-requested status change and describe it."""
    if target not in EXPLICIT_TARGETS:
        raise InvalidTransitionError(f"{target} cannot be set explicitly")
    current = session.status
    if target is SessionStatus.LIVE:
        if current is not SessionStatus.SCHEDULED:
            raise InvalidTransitionError("Only scheduled sessions can go live")
        return Transition(
            kind=TransitionKind.WENT_LIVE,
            from_status=current,
            to_status=SessionStatus.LIVE,
        )
    if target is SessionStatus.COMPLETED:
        if current not in RUNNING_STATUSES:
            raise InvalidTransitionError("Only live sessions can be completed")
        return Transition(
            kind=TransitionKind.COMPLETED,
            from_status=current,
            to_status=SessionStatus.COMPLETED,
            ended_at=now,
            participant_updates=_COMPLETION_UPDATES,
        )
    if current is not SessionStatus.SCHEDULED and current not in RUNNING_STATUSES:
        raise InvalidTransitionError(f"A {current} session cannot be cancelled")
    return Transition(
        kind=TransitionKind.CANCELLED,
        from_status=current,
        to_status=SessionStatus.CANCELLED,
        clear_room=True,
        participant_updates=_CANCELLATION_UPDATES,
    )


def status_sweep_queries(now: datetime) -> list[SessionQuery]:
    """Return the bounded candidate sets a status sweep has to load."""
    scheduled = frozenset({SessionStatus.SCHEDULED})
    return [
        # about to start
        SessionQuery(
            statuses=scheduled,
            scheduled_from=now - START_WINDOW,
            scheduled_to=now,
        ),
        # no-show or stale
        SessionQuery(statuses=scheduled, scheduled_to=now - NO_SHOW_AFTER),
        # overdue for completion
        SessionQuery(
            statuses=RUNNING_STATUSES,
            scheduled_to=now - COMPLETION_BUFFER,
        ),
    ]
