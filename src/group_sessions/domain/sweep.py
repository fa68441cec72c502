"""Domain models for sweep runs and reminder milestones."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID


class SweepKind(StrEnum):
    """Which periodic job a sweep invocation runs."""

    STATUS = "status"
    REMINDERS = "reminders"


class Milestone(StrEnum):
    """Reminder milestones before a session starts."""

    ONE_HOUR = "ONE_HOUR"
    STARTING = "STARTING"


@dataclass(frozen=True)
class MilestoneWindow:
    """Target offset, matching tolerance and persisted flag for a milestone."""

    milestone: Milestone
    offset: timedelta
    tolerance: timedelta
    flag: str
    counter: str

    def bounds(self, now: datetime) -> tuple[datetime, datetime]:
        """Return the [start, end) window of matching start times."""
        target = now + self.offset
        return target - self.tolerance, target + self.tolerance

    def matches(self, scheduled_at: datetime, now: datetime) -> bool:
        start, end = self.bounds(now)
        return start <= scheduled_at < end


MILESTONE_WINDOWS: tuple[MilestoneWindow, ...] = (
    MilestoneWindow(
        milestone=Milestone.ONE_HOUR,
        offset=timedelta(hours=1),
        tolerance=timedelta(minutes=7, seconds=30),
        flag="reminder_sent",
        counter="reminders",
    ),
    MilestoneWindow(
        milestone=Milestone.STARTING,
        offset=timedelta(minutes=5),
        tolerance=timedelta(minutes=2, seconds=30),
        flag="starting_sent",
        counter="starting",
    ),
)


@dataclass(frozen=True)
class SweepError:
    """A failure isolated to one session during a sweep."""

    session_id: UUID | None
    step: str
    message: str


@dataclass
class SweepSummary:
    """Counts and errors collected by one sweep invocation."""

    kind: SweepKind
    started_at: datetime
    counts: Counter[str] = field(default_factory=Counter)
    errors: list[SweepError] = field(default_factory=list)
    deadline_exceeded: bool = False

    def record_error(self, session_id: UUID | None, step: str, exc: Exception) -> None:
        message = f"{type(exc).__name__}: {exc}".strip()
        self.errors.append(SweepError(session_id=session_id, step=step, message=message))

    def to_dict(self) -> dict[str, object]:
        return {
            "success": True,
            "kind": self.kind.value,
            "counts": dict(self.counts),
            "errors": [
                {
                    "session_id": str(error.session_id) if error.session_id else None,
                    "step": error.step,
                    "message": error.message,
                }
                for error in self.errors
            ],
            "deadline_exceeded": self.deadline_exceeded,
            "timestamp": self.started_at.isoformat(),
        }
