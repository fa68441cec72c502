"""Participant notifications for session milestones."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from group_sessions.domain.notifications import NotificationRecord
from group_sessions.domain.sessions import GroupSession, ParticipantStatus
from group_sessions.domain.sweep import Milestone
from group_sessions.services.sessions import SessionRepository

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Interface for notifying a session's participants."""

    async def notify(self, session_id: UUID, milestone: Milestone) -> None:
        """Send the milestone notification; raise on delivery failure."""

    async def notify_cancelled(self, session_id: UUID) -> None:
        """Tell participants that the session was cancelled."""


class NotificationRepository(Protocol):
    """Persistence interface for in-app notifications."""

    def create_notifications(self, notifications: list[NotificationRecord]) -> None:
        """Insert notification rows."""


@dataclass
class NotificationService(Notifier):
    """Writes in-app notifications for every active participant.

    The store calls are blocking, so each delivery runs in a worker thread
    and the caller's timeout can abandon it.
    """

    session_repository: SessionRepository
    repository: NotificationRepository

    async def notify(self, session_id: UUID, milestone: Milestone) -> None:
        """Notify participants that a session is coming up."""
        await asyncio.to_thread(self._notify_milestone, session_id, milestone)

    async def notify_cancelled(self, session_id: UUID) -> None:
        """Notify participants that a session was cancelled."""
        await asyncio.to_thread(self._notify_cancelled, session_id)

    def _notify_milestone(self, session_id: UUID, milestone: Milestone) -> None:
        session = self.session_repository.get_session(session_id)
        if session is None:
            logger.warning(
                "Skipping notification for missing session",
                extra={"session_id": str(session_id)},
            )
            return
        if milestone is Milestone.ONE_HOUR:
            template = _reminder(session)
        else:
            template = _starting(session)
        self._send(session, *template)

    def _notify_cancelled(self, session_id: UUID) -> None:
        session = self.session_repository.get_session(session_id)
        if session is None:
            return
        self._send(
            session,
            "SESSION_CANCELLED",
            "Session cancelled",
            f'Your session "{session.title}" was cancelled.',
            {"link": "/sessions", "session_id": str(session.id)},
            include_cancelled=True,
        )

    def _send(  # noqa: PLR0913
        self,
        session: GroupSession,
        notification_type: str,
        title: str,
        message: str,
        data: dict[str, object],
        *,
        include_cancelled: bool = False,
    ) -> None:
        participants = self.session_repository.list_participants(session.id)
        # cancelling a session rewrites every participant to CANCELLED first
        recipients = [
            participant
            for participant in participants
            if include_cancelled
            or participant.status is not ParticipantStatus.CANCELLED
        ]
        if not recipients:
            return
        self.repository.create_notifications(
            [
                NotificationRecord(
                    user_id=participant.user_id,
                    type=notification_type,
                    title=title,
                    message=message,
                    data=data,
                )
                for participant in recipients
            ]
        )


def _reminder(session: GroupSession) -> tuple[str, str, str, dict[str, object]]:
    return (
        "SESSION_REMINDER",
        "Session reminder",
        f'Your session "{session.title}" starts in 1 hour.',
        {"link": f"/sessions/{session.id}", "session_id": str(session.id)},
    )


def _starting(session: GroupSession) -> tuple[str, str, str, dict[str, object]]:
    return (
        "SESSION_STARTING",
        "Session starting now",
        f'Your session "{session.title}" is about to start.',
        {
            "link": f"/sessions/{session.id}/room",
            "session_id": str(session.id),
            "urgent": True,
        },
    )
