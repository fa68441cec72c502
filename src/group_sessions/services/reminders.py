"""Flag-gated reminder dispatch for upcoming sessions.

Each milestone has a persisted flag on the session. A session is notified
only while the flag is false, and the flag is set right after the
notification call returns. A failed send leaves the flag alone so the next
sweep tries again.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime

from group_sessions.domain.lifecycle import SessionQuery
from group_sessions.domain.sessions import GroupSession, SessionStatus
from group_sessions.domain.sweep import MILESTONE_WINDOWS, MilestoneWindow, SweepSummary
from group_sessions.services.notifications import Notifier
from group_sessions.services.sessions import SessionRepository

logger = logging.getLogger(__name__)

CANDIDATE_LIMIT = 500


@dataclass
class ReminderDispatcher:
    """Sends each milestone notification at most once per session."""

    repository: SessionRepository
    notifier: Notifier
    notification_timeout_seconds: float = 10.0
    windows: tuple[MilestoneWindow, ...] = MILESTONE_WINDOWS

    async def dispatch(
        self,
        now: datetime,
        summary: SweepSummary,
        deadline: float | None = None,
    ) -> None:
        """Notify every session inside a milestone window, recording results."""
        for window in self.windows:
            summary.counts.setdefault(window.counter, 0)
            try:
                candidates = self._load_candidates(window, now)
            except Exception as exc:
                logger.exception(
                    "Failed to load reminder candidates",
                    extra={"milestone": window.milestone.value},
                )
                summary.record_error(None, f"load:{window.milestone.value}", exc)
                continue
            for session in candidates:
                if deadline is not None and time.monotonic() >= deadline:
                    summary.deadline_exceeded = True
                    return
                await self._dispatch_one(session, window, summary)

    def _load_candidates(
        self, window: MilestoneWindow, now: datetime
    ) -> list[GroupSession]:
        start, end = window.bounds(now)
        sessions = self.repository.list_sessions(
            SessionQuery(
                statuses=frozenset({SessionStatus.SCHEDULED}),
                scheduled_from=start,
                scheduled_to=end,
                unsent_flag=window.flag,
            ),
            limit=CANDIDATE_LIMIT,
        )
        return [
            session
            for session in sessions
            if session.status is SessionStatus.SCHEDULED
            and not getattr(session, window.flag)
            and window.matches(session.scheduled_at, now)
        ]

    async def _dispatch_one(
        self, session: GroupSession, window: MilestoneWindow, summary: SweepSummary
    ) -> None:
        step = window.milestone.value
        try:
            await asyncio.wait_for(
                self.notifier.notify(session.id, window.milestone),
                timeout=self.notification_timeout_seconds,
            )
        except Exception as exc:
            logger.exception(
                "Failed to send %s notification",
                step,
                extra={"session_id": str(session.id)},
            )
            summary.record_error(session.id, f"notify:{step}", exc)
            return

        try:
            marked = self.repository.mark_milestone_sent(session.id, window.flag)
        except Exception as exc:
            # The notification went out but the flag did not stick; the next
            # sweep will send it again.
            logger.exception(
                "Sent %s notification but failed to set %s",
                step,
                window.flag,
                extra={"session_id": str(session.id)},
            )
            summary.record_error(session.id, f"mark:{step}", exc)
            return
        if not marked:
            logger.warning(
                "%s already set by a concurrent sweep",
                window.flag,
                extra={"session_id": str(session.id)},
            )
        summary.counts[window.counter] += 1
