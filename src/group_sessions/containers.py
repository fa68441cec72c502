"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from group_sessions.adapters.daily_room_client import DailyRoomClient, RoomClient
from group_sessions.adapters.supabase_audit_repository import SupabaseAuditRepository
from group_sessions.adapters.supabase_notification_repository import (
    SupabaseNotificationRepository,
)
from group_sessions.adapters.supabase_patient_repository import (
    SupabasePatientRepository,
)
from group_sessions.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from group_sessions.config import Settings
from group_sessions.services.audit import AuditService
from group_sessions.services.enrollment import EnrollmentService
from group_sessions.services.notifications import NotificationService
from group_sessions.services.reminders import ReminderDispatcher
from group_sessions.services.sessions import SessionService
from group_sessions.services.sweep import SweepService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    room_client: RoomClient
    enrollment_service: EnrollmentService
    session_service: SessionService
    sweep_service: SweepService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    audit_service = AuditService(SupabaseAuditRepository(supabase_client))
    notification_service = NotificationService(
        session_repository=session_repository,
        repository=SupabaseNotificationRepository(supabase_client),
    )
    room_client = DailyRoomClient.create(
        api_key=resolved_settings.daily_api_key,
        base_url=resolved_settings.daily_base_url,
    )
    enrollment_service = EnrollmentService(
        repository=session_repository,
        patient_directory=SupabasePatientRepository(supabase_client),
        audit_service=audit_service,
    )
    session_service = SessionService(
        repository=session_repository,
        room_client=room_client,
        notifier=notification_service,
        audit_service=audit_service,
    )
    sweep_service = SweepService(
        repository=session_repository,
        reminder_dispatcher=ReminderDispatcher(
            repository=session_repository,
            notifier=notification_service,
            notification_timeout_seconds=resolved_settings.notification_timeout_seconds,
        ),
        status_interval_seconds=resolved_settings.status_sweep_interval_seconds,
        reminder_interval_seconds=resolved_settings.reminder_sweep_interval_seconds,
    )

    async def close_resources() -> None:
        await room_client.close()

    return AppContainer(
        settings=resolved_settings,
        room_client=room_client,
        enrollment_service=enrollment_service,
        session_service=session_service,
        sweep_service=sweep_service,
        close_resources=close_resources,
    )
