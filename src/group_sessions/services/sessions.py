"""Session store interface and operator-driven status changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from group_sessions.domain.results import ErrorKind, SessionResult
from group_sessions.domain.sessions import (
    CancelOutcome,
    EnrollOutcome,
    GroupSession,
    Participant,
    SessionStatus,
)
from group_sessions.services.audit import AuditAction, AuditService
from group_sessions.services.lifecycle import (
    InvalidTransitionError,
    explicit_transition,
)

if TYPE_CHECKING:
    from group_sessions.adapters.daily_room_client import RoomClient
    from group_sessions.domain.lifecycle import SessionQuery, Transition
    from group_sessions.domain.models import Actor
    from group_sessions.services.notifications import Notifier

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for sessions and their participants."""

    def get_session(self, session_id: UUID) -> GroupSession | None:
        """Return a session by id, if present."""

    def list_sessions(self, query: SessionQuery, limit: int) -> list[GroupSession]:
        """Return sessions matching a bounded query."""

    def count_participants(self, session_ids: list[UUID]) -> dict[UUID, int]:
        """Return non-cancelled participant counts keyed by session id."""

    def list_participants(self, session_id: UUID) -> list[Participant]:
        """Return every participant of a session."""

    def get_participant(self, session_id: UUID, user_id: UUID) -> Participant | None:
        """Return one enrollment, if present."""

    def enroll_participant(self, session_id: UUID, user_id: UUID) -> EnrollOutcome:
        """Atomically check status and capacity, then insert a participant."""

    def cancel_enrollment(
        self, session_id: UUID, user_id: UUID, cutoff: datetime
    ) -> CancelOutcome:
        """Atomically delete an enrollment if the session starts after cutoff."""

    def apply_transition(self, session_id: UUID, transition: Transition) -> bool:
        """Apply a transition if the status still matches; report success."""

    def mark_milestone_sent(self, session_id: UUID, flag: str) -> bool:
        """Set a reminder flag if it is still unset; report success."""


@dataclass
class SessionService:
    """Explicit status changes requested by therapists and admins."""

    repository: SessionRepository
    room_client: RoomClient
    notifier: Notifier
    audit_service: AuditService

    async def set_status(
        self,
        session_id: UUID,
        target: SessionStatus,
        actor: Actor,
        now: datetime | None = None,
    ) -> SessionResult:
        """Move a session to LIVE, COMPLETED or CANCELLED."""
        current_time = now or datetime.now(tz=UTC)
        try:
            session = self.repository.get_session(session_id)
        except Exception:
            logger.exception("Failed to load session", extra={"session_id": str(session_id)})
            return SessionResult(session=None, error_kind=ErrorKind.INTERNAL)
        if session is None:
            return SessionResult(session=None, error_kind=ErrorKind.NOT_FOUND)
        if not actor.is_admin and session.therapist_id != actor.user_id:
            return SessionResult(session=None, error_kind=ErrorKind.UNAUTHORIZED)

        try:
            transition = explicit_transition(session, target, current_time)
        except InvalidTransitionError as exc:
            logger.info(
                "Rejected status change: %s",
                exc,
                extra={"session_id": str(session_id), "target": target.value},
            )
            return SessionResult(session=session, error_kind=ErrorKind.INVALID_STATE)

        try:
            applied = self.repository.apply_transition(session_id, transition)
            updated = self.repository.get_session(session_id)
        except Exception:
            logger.exception(
                "Failed to apply status change", extra={"session_id": str(session_id)}
            )
            return SessionResult(session=session, error_kind=ErrorKind.INTERNAL)
        if not applied:
            # someone else moved the session first
            return SessionResult(
                session=updated or session, error_kind=ErrorKind.INVALID_STATE
            )

        self.audit_service.record_event(
            user_id=actor.user_id,
            entity_type="group_session",
            entity_id=session_id,
            event_type=AuditAction.SESSION_STATUS_CHANGED,
            before={"status": session.status.value},
            after={"status": transition.to_status.value, "kind": transition.kind.value},
        )
        if transition.to_status is SessionStatus.CANCELLED:
            await self._release_cancelled(session)
        return SessionResult(session=updated or session)

    async def _release_cancelled(self, session: GroupSession) -> None:
        if session.room_name:
            try:
                await self.room_client.delete_room(session.room_name)
            except Exception:
                logger.exception(
                    "Failed to delete live room",
                    extra={"session_id": str(session.id), "room": session.room_name},
                )
        try:
            await self.notifier.notify_cancelled(session.id)
        except Exception:
            logger.exception(
                "Failed to notify participants of cancellation",
                extra={"session_id": str(session.id)},
            )
