"""Tests for the lifecycle state machine."""

from datetime import timedelta

import pytest

from group_sessions.domain.lifecycle import TransitionKind
from group_sessions.domain.sessions import ParticipantStatus, SessionStatus
from group_sessions.services.lifecycle import (
    InvalidTransitionError,
    decide,
    explicit_transition,
    status_sweep_queries,
)
from tests.conftest import NOW, make_session


def test_scheduled_session_starts_inside_start_window() -> None:
    session = make_session(scheduled_at=NOW - timedelta(minutes=2))

    transition = decide(session, NOW, participant_count=3)

    assert transition is not None
    assert transition.kind is TransitionKind.STARTED
    assert transition.to_status is SessionStatus.IN_PROGRESS


def test_scheduled_session_does_not_start_early_or_late() -> None:
    early = make_session(scheduled_at=NOW + timedelta(minutes=1))
    late = make_session(scheduled_at=NOW - timedelta(minutes=5))

    assert decide(early, NOW, participant_count=3) is None
    assert decide(late, NOW, participant_count=3) is None


def test_empty_session_becomes_no_show_after_thirty_minutes() -> None:
    session = make_session(scheduled_at=NOW - timedelta(minutes=31))

    transition = decide(session, NOW, participant_count=0)

    assert transition is not None
    assert transition.kind is TransitionKind.NO_SHOW
    assert transition.to_status is SessionStatus.NO_SHOW


def test_long_past_empty_session_is_no_show_not_stale() -> None:
    session = make_session(scheduled_at=NOW - timedelta(hours=30))

    transition = decide(session, NOW, participant_count=0)

    assert transition is not None
    assert transition.kind is TransitionKind.NO_SHOW


def test_empty_session_waits_before_no_show() -> None:
    session = make_session(scheduled_at=NOW - timedelta(minutes=2))

    assert decide(session, NOW, participant_count=0) is None


def test_stale_scheduled_session_is_cancelled() -> None:
    session = make_session(scheduled_at=NOW - timedelta(hours=25))

    transition = decide(session, NOW, participant_count=2)

    assert transition is not None
    assert transition.kind is TransitionKind.STALE_CANCELLED
    assert transition.participant_updates[0].to_status is ParticipantStatus.CANCELLED


@pytest.mark.parametrize("status", [SessionStatus.IN_PROGRESS, SessionStatus.LIVE])
def test_running_session_completes_after_buffer(status: SessionStatus) -> None:
    session = make_session(
        scheduled_at=NOW - timedelta(minutes=76), duration_minutes=60, status=status
    )

    transition = decide(session, NOW, participant_count=2)

    assert transition is not None
    assert transition.kind is TransitionKind.COMPLETED
    assert transition.from_status is status
    assert transition.ended_at == session.nominal_end
    assert [
        (update.from_status, update.to_status)
        for update in transition.participant_updates
    ] == [
        (ParticipantStatus.CONFIRMED, ParticipantStatus.ATTENDED),
        (ParticipantStatus.REGISTERED, ParticipantStatus.NO_SHOW),
    ]


def test_running_session_inside_buffer_keeps_running() -> None:
    session = make_session(
        scheduled_at=NOW - timedelta(minutes=70),
        duration_minutes=60,
        status=SessionStatus.IN_PROGRESS,
    )

    assert decide(session, NOW, participant_count=2) is None


@pytest.mark.parametrize(
    "status",
    [SessionStatus.COMPLETED, SessionStatus.NO_SHOW, SessionStatus.CANCELLED],
)
def test_terminal_sessions_never_transition(status: SessionStatus) -> None:
    session = make_session(scheduled_at=NOW - timedelta(days=3), status=status)

    assert decide(session, NOW, participant_count=0) is None


def test_explicit_live_only_from_scheduled() -> None:
    scheduled = make_session()
    live = explicit_transition(scheduled, SessionStatus.LIVE, NOW)

    assert live.kind is TransitionKind.WENT_LIVE
    with pytest.raises(InvalidTransitionError):
        explicit_transition(
            make_session(status=SessionStatus.COMPLETED), SessionStatus.LIVE, NOW
        )


def test_explicit_completion_uses_current_time() -> None:
    session = make_session(status=SessionStatus.LIVE)

    transition = explicit_transition(session, SessionStatus.COMPLETED, NOW)

    assert transition.ended_at == NOW
    with pytest.raises(InvalidTransitionError):
        explicit_transition(make_session(), SessionStatus.COMPLETED, NOW)


def test_explicit_cancellation_clears_room() -> None:
    session = make_session(status=SessionStatus.IN_PROGRESS, room_name="room-1")

    transition = explicit_transition(session, SessionStatus.CANCELLED, NOW)

    assert transition.clear_room is True
    assert transition.participant_updates[0].from_status is None
    with pytest.raises(InvalidTransitionError):
        explicit_transition(
            make_session(status=SessionStatus.NO_SHOW), SessionStatus.CANCELLED, NOW
        )


def test_sweep_only_targets_are_rejected_explicitly() -> None:
    with pytest.raises(InvalidTransitionError):
        explicit_transition(make_session(), SessionStatus.IN_PROGRESS, NOW)


def test_status_sweep_queries_are_bounded() -> None:
    queries = status_sweep_queries(NOW)

    assert len(queries) == 3
    assert all(query.scheduled_to is not None for query in queries)
    assert all(query.scheduled_to <= NOW for query in queries)
