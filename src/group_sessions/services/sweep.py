"""Periodic sweeps that advance session status and send reminders."""

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from group_sessions.domain.sessions import GroupSession
from group_sessions.domain.sweep import SweepKind, SweepSummary
from group_sessions.services import lifecycle
from group_sessions.services.reminders import ReminderDispatcher
from group_sessions.services.sessions import SessionRepository

logger = logging.getLogger(__name__)

CANDIDATE_LIMIT = 500


@dataclass
class SweepService:
    """Runs one sweep per external trigger, isolating failures per session."""

    repository: SessionRepository
    reminder_dispatcher: ReminderDispatcher
    status_interval_seconds: float = 300
    reminder_interval_seconds: float = 900

    async def run(self, kind: SweepKind, now: datetime | None = None) -> SweepSummary:
        """Run a sweep of the given kind and return its summary."""
        current_time = now or datetime.now(tz=UTC)
        summary = SweepSummary(kind=kind, started_at=current_time)
        if kind is SweepKind.STATUS:
            deadline = time.monotonic() + self.status_interval_seconds
            self._sweep_statuses(current_time, summary, deadline)
        else:
            deadline = time.monotonic() + self.reminder_interval_seconds
            await self.reminder_dispatcher.dispatch(current_time, summary, deadline)
        logger.info(
            "Sweep %s finished: counts=%s errors=%d deadline_exceeded=%s",
            kind.value,
            dict(summary.counts),
            len(summary.errors),
            summary.deadline_exceeded,
        )
        return summary

    def _sweep_statuses(
        self, now: datetime, summary: SweepSummary, deadline: float
    ) -> None:
        for kind in lifecycle.SWEEP_TRANSITIONS:
            summary.counts.setdefault(kind.value, 0)
        summary.counts.setdefault("skipped", 0)

        candidates = self._load_candidates(now, summary)
        if not candidates:
            return
        try:
            counts = self.repository.count_participants(list(candidates))
        except Exception as exc:
            logger.exception("Failed to count participants for status sweep")
            summary.record_error(None, "count_participants", exc)
            return

        for session_id, session in candidates.items():
            if time.monotonic() >= deadline:
                summary.deadline_exceeded = True
                logger.warning("Status sweep hit its deadline; deferring the rest")
                return
            try:
                self._advance(session, now, counts.get(session_id, 0), summary)
            except Exception as exc:
                logger.exception(
                    "Failed to advance session", extra={"session_id": str(session_id)}
                )
                summary.record_error(session_id, "transition", exc)

    def _load_candidates(
        self, now: datetime, summary: SweepSummary
    ) -> dict[UUID, GroupSession]:
        candidates: dict[UUID, GroupSession] = {}
        for query in lifecycle.status_sweep_queries(now):
            try:
                sessions = self.repository.list_sessions(query, limit=CANDIDATE_LIMIT)
            except Exception as exc:
                logger.exception("Failed to load status sweep candidates")
                summary.record_error(None, "load", exc)
                continue
            for session in sessions:
                candidates.setdefault(session.id, session)
        return candidates

    def _advance(
        self,
        session: GroupSession,
        now: datetime,
        participant_count: int,
        summary: SweepSummary,
    ) -> None:
        transition = lifecycle.decide(session, now, participant_count)
        if transition is None:
            return
        if self.repository.apply_transition(session.id, transition):
            summary.counts[transition.kind.value] += 1
            logger.info(
                "Session %s: %s -> %s",
                session.id,
                transition.from_status.value,
                transition.to_status.value,
            )
        else:
            summary.counts["skipped"] += 1
