"""Shared test fixtures."""

import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from group_sessions.adapters.daily_room_client import RoomClient
from group_sessions.config import Settings
from group_sessions.containers import AppContainer
from group_sessions.domain.lifecycle import SessionQuery, Transition
from group_sessions.domain.notifications import NotificationRecord
from group_sessions.domain.sessions import (
    CancelOutcome,
    EnrollOutcome,
    GroupSession,
    Participant,
    ParticipantStatus,
    SessionStatus,
)
from group_sessions.domain.sweep import Milestone
from group_sessions.services.audit import AuditRepository, AuditService
from group_sessions.services.enrollment import EnrollmentService, PatientDirectory
from group_sessions.services.notifications import NotificationRepository, Notifier
from group_sessions.services.reminders import ReminderDispatcher
from group_sessions.services.sessions import SessionRepository, SessionService
from group_sessions.services.sweep import SweepService

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


def make_session(  # noqa: PLR0913
    *,
    scheduled_at: datetime = NOW + timedelta(days=2),
    status: SessionStatus = SessionStatus.SCHEDULED,
    max_participants: int = 8,
    duration_minutes: int = 60,
    therapist_id: UUID | None = None,
    room_name: str | None = None,
    reminder_sent: bool = False,
    starting_sent: bool = False,
) -> GroupSession:
    return GroupSession(
        id=uuid4(),
        therapist_id=therapist_id or uuid4(),
        title="Anxiety support circle",
        description=None,
        scheduled_at=scheduled_at,
        duration_minutes=duration_minutes,
        max_participants=max_participants,
        status=status,
        reminder_sent=reminder_sent,
        starting_sent=starting_sent,
        room_name=room_name,
        room_url=f"https://example.daily.co/{room_name}" if room_name else None,
    )


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session store; a lock stands in for database transactions."""

    sessions: dict[UUID, GroupSession] = field(default_factory=dict)
    participants: dict[tuple[UUID, UUID], Participant] = field(default_factory=dict)
    failing_transitions: set[UUID] = field(default_factory=set)
    fail_mark: bool = False
    fail_list: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock)

    def add(self, session: GroupSession) -> GroupSession:
        self.sessions[session.id] = session
        return session

    def add_participant(
        self,
        session_id: UUID,
        status: ParticipantStatus = ParticipantStatus.REGISTERED,
        user_id: UUID | None = None,
    ) -> Participant:
        participant = Participant(
            session_id=session_id, user_id=user_id or uuid4(), status=status
        )
        self.participants[(session_id, participant.user_id)] = participant
        return participant

    def get_session(self, session_id: UUID) -> GroupSession | None:
        return self.sessions.get(session_id)

    def list_sessions(self, query: SessionQuery, limit: int) -> list[GroupSession]:
        if self.fail_list:
            raise RuntimeError("store unavailable")
        matches = [
            session
            for session in self.sessions.values()
            if session.status in query.statuses
            and (query.scheduled_from is None or session.scheduled_at >= query.scheduled_from)
            and (query.scheduled_to is None or session.scheduled_at <= query.scheduled_to)
            and (query.unsent_flag is None or not getattr(session, query.unsent_flag))
        ]
        return sorted(matches, key=lambda session: session.scheduled_at)[:limit]

    def count_participants(self, session_ids: list[UUID]) -> dict[UUID, int]:
        counts = dict.fromkeys(session_ids, 0)
        for (session_id, _), participant in self.participants.items():
            if session_id in counts and participant.status is not ParticipantStatus.CANCELLED:
                counts[session_id] += 1
        return counts

    def list_participants(self, session_id: UUID) -> list[Participant]:
        return [
            participant
            for (owner, _), participant in self.participants.items()
            if owner == session_id
        ]

    def get_participant(self, session_id: UUID, user_id: UUID) -> Participant | None:
        return self.participants.get((session_id, user_id))

    def enroll_participant(self, session_id: UUID, user_id: UUID) -> EnrollOutcome:
        with self.lock:
            session = self.sessions.get(session_id)
            if session is None:
                return EnrollOutcome.NOT_FOUND
            if session.status is not SessionStatus.SCHEDULED:
                return EnrollOutcome.INVALID_STATE
            if self.count_participants([session_id])[session_id] >= session.max_participants:
                return EnrollOutcome.FULL
            if (session_id, user_id) in self.participants:
                return EnrollOutcome.ALREADY_ENROLLED
            self.participants[(session_id, user_id)] = Participant(
                session_id=session_id,
                user_id=user_id,
                status=ParticipantStatus.REGISTERED,
                joined_at=datetime.now(tz=UTC),
            )
            return EnrollOutcome.ENROLLED

    def cancel_enrollment(
        self, session_id: UUID, user_id: UUID, cutoff: datetime
    ) -> CancelOutcome:
        with self.lock:
            session = self.sessions.get(session_id)
            if session is None or (session_id, user_id) not in self.participants:
                return CancelOutcome.NOT_FOUND
            if session.status is not SessionStatus.SCHEDULED:
                return CancelOutcome.INVALID_STATE
            if session.scheduled_at < cutoff:
                return CancelOutcome.TOO_LATE
            del self.participants[(session_id, user_id)]
            return CancelOutcome.CANCELLED

    def apply_transition(self, session_id: UUID, transition: Transition) -> bool:
        if session_id in self.failing_transitions:
            raise RuntimeError("write failed")
        with self.lock:
            session = self.sessions.get(session_id)
            if session is None or session.status is not transition.from_status:
                return False
            self.sessions[session_id] = replace(
                session,
                status=transition.to_status,
                ended_at=transition.ended_at or session.ended_at,
                room_name=None if transition.clear_room else session.room_name,
                room_url=None if transition.clear_room else session.room_url,
            )
            for update in transition.participant_updates:
                for key, participant in list(self.participants.items()):
                    if key[0] != session_id:
                        continue
                    if update.from_status is None:
                        selected = participant.status is not ParticipantStatus.CANCELLED
                    else:
                        selected = participant.status is update.from_status
                    if selected:
                        self.participants[key] = replace(
                            participant, status=update.to_status
                        )
            return True

    def mark_milestone_sent(self, session_id: UUID, flag: str) -> bool:
        if self.fail_mark:
            raise RuntimeError("flag update failed")
        with self.lock:
            session = self.sessions[session_id]
            if getattr(session, flag):
                return False
            self.sessions[session_id] = replace(session, **{flag: True})
            return True


@dataclass
class InMemoryPatientDirectory(PatientDirectory):
    """Treats every user as a patient unless listed as ineligible."""

    ineligible: set[UUID] = field(default_factory=set)

    def is_patient(self, user_id: UUID) -> bool:
        return user_id not in self.ineligible


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit repository for tests."""

    events: list[dict[str, object]] = field(default_factory=list)

    def create_event(  # noqa: PLR0913
        self,
        user_id: UUID | None,
        entity_type: str,
        entity_id: UUID,
        event_type: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        self.events.append(
            {
                "user_id": user_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "event_type": event_type,
                "before": before,
                "after": after,
            }
        )


@dataclass
class InMemoryNotificationRepository(NotificationRepository):
    """Collects notification rows."""

    notifications: list[NotificationRecord] = field(default_factory=list)

    def create_notifications(self, notifications: list[NotificationRecord]) -> None:
        self.notifications.extend(notifications)


@dataclass
class FakeNotifier(Notifier):
    """Records notifications; sessions listed in ``failing`` raise."""

    sent: list[tuple[UUID, Milestone]] = field(default_factory=list)
    cancelled: list[UUID] = field(default_factory=list)
    failing: set[UUID] = field(default_factory=set)

    async def notify(self, session_id: UUID, milestone: Milestone) -> None:
        if session_id in self.failing:
            raise RuntimeError("push gateway down")
        self.sent.append((session_id, milestone))

    async def notify_cancelled(self, session_id: UUID) -> None:
        if session_id in self.failing:
            raise RuntimeError("push gateway down")
        self.cancelled.append(session_id)


@dataclass
class FakeRoomClient(RoomClient):
    """Records room deletions."""

    deleted: list[str] = field(default_factory=list)
    fail: bool = False

    async def delete_room(self, room_name: str) -> None:
        if self.fail:
            raise RuntimeError("daily unavailable")
        self.deleted.append(room_name)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        cron_secret="cron-secret",
        daily_api_key="daily-key",
    )


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def patient_directory() -> InMemoryPatientDirectory:
    return InMemoryPatientDirectory()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def room_client() -> FakeRoomClient:
    return FakeRoomClient()


@pytest.fixture
def enrollment_service(
    session_repository: InMemorySessionRepository,
    patient_directory: InMemoryPatientDirectory,
    audit_repository: InMemoryAuditRepository,
) -> EnrollmentService:
    return EnrollmentService(
        repository=session_repository,
        patient_directory=patient_directory,
        audit_service=AuditService(audit_repository),
    )


@pytest.fixture
def session_service(
    session_repository: InMemorySessionRepository,
    room_client: FakeRoomClient,
    notifier: FakeNotifier,
    audit_repository: InMemoryAuditRepository,
) -> SessionService:
    return SessionService(
        repository=session_repository,
        room_client=room_client,
        notifier=notifier,
        audit_service=AuditService(audit_repository),
    )


@pytest.fixture
def sweep_service(
    session_repository: InMemorySessionRepository, notifier: FakeNotifier
) -> SweepService:
    return SweepService(
        repository=session_repository,
        reminder_dispatcher=ReminderDispatcher(
            repository=session_repository, notifier=notifier
        ),
    )


@pytest.fixture
def container(
    settings: Settings,
    room_client: FakeRoomClient,
    enrollment_service: EnrollmentService,
    session_service: SessionService,
    sweep_service: SweepService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        room_client=room_client,
        enrollment_service=enrollment_service,
        session_service=session_service,
        sweep_service=sweep_service,
        close_resources=close_resources,
    )
