"""Enrollment and cancellation against session capacity."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from group_sessions.domain.models import Actor
from group_sessions.domain.results import EnrollmentResult, EnrollmentStatus, ErrorKind
from group_sessions.domain.sessions import CancelOutcome, EnrollOutcome, SessionStatus
from group_sessions.services.audit import AuditAction, AuditService
from group_sessions.services.sessions import SessionRepository

logger = logging.getLogger(__name__)

CANCELLATION_NOTICE = timedelta(hours=24)

_ENROLL_ERRORS = {
    EnrollOutcome.NOT_FOUND: ErrorKind.NOT_FOUND,
    EnrollOutcome.INVALID_STATE: ErrorKind.INVALID_STATE,
    EnrollOutcome.FULL: ErrorKind.FULL,
    EnrollOutcome.ALREADY_ENROLLED: ErrorKind.ALREADY_ENROLLED,
}

_CANCEL_ERRORS = {
    CancelOutcome.NOT_FOUND: ErrorKind.NOT_FOUND,
    CancelOutcome.INVALID_STATE: ErrorKind.INVALID_STATE,
    CancelOutcome.TOO_LATE: ErrorKind.TOO_LATE,
}


class PatientDirectory(Protocol):
    """Lookup of users who hold a patient profile."""

    def is_patient(self, user_id: UUID) -> bool:
        """Return true when the user can enroll as a patient."""


@dataclass
class EnrollmentService:
    """Creates, cancels and reports enrollments."""

    repository: SessionRepository
    patient_directory: PatientDirectory
    audit_service: AuditService

    def enroll(self, session_id: UUID, actor: Actor) -> EnrollmentResult:
        """Register the actor for a session if it has room."""
        try:
            session = self.repository.get_session(session_id)
            if session is None:
                return EnrollmentResult.failed(ErrorKind.NOT_FOUND)
            if session.status is not SessionStatus.SCHEDULED:
                return EnrollmentResult.failed(ErrorKind.INVALID_STATE)
            if not self.patient_directory.is_patient(actor.user_id):
                return EnrollmentResult.failed(ErrorKind.NOT_ELIGIBLE)
            # status, capacity and uniqueness are re-checked inside the store
            outcome = self.repository.enroll_participant(session_id, actor.user_id)
        except Exception:
            logger.exception(
                "Enrollment failed",
                extra={"session_id": str(session_id), "user_id": str(actor.user_id)},
            )
            return EnrollmentResult.failed(ErrorKind.INTERNAL)

        if outcome is not EnrollOutcome.ENROLLED:
            return EnrollmentResult.failed(_ENROLL_ERRORS[outcome])
        self.audit_service.record_event(
            user_id=actor.user_id,
            entity_type="session_participant",
            entity_id=session_id,
            event_type=AuditAction.ENROLLMENT_CREATED,
            before=None,
            after={"status": "REGISTERED"},
        )
        return EnrollmentResult.ok()

    def cancel(
        self, session_id: UUID, actor: Actor, now: datetime | None = None
    ) -> EnrollmentResult:
        """Withdraw the actor's enrollment at least 24 hours before start."""
        current_time = now or datetime.now(tz=UTC)
        try:
            outcome = self.repository.cancel_enrollment(
                session_id, actor.user_id, cutoff=current_time + CANCELLATION_NOTICE
            )
        except Exception:
            logger.exception(
                "Enrollment cancellation failed",
                extra={"session_id": str(session_id), "user_id": str(actor.user_id)},
            )
            return EnrollmentResult.failed(ErrorKind.INTERNAL)

        if outcome is not CancelOutcome.CANCELLED:
            return EnrollmentResult.failed(_CANCEL_ERRORS[outcome])
        self.audit_service.record_event(
            user_id=actor.user_id,
            entity_type="session_participant",
            entity_id=session_id,
            event_type=AuditAction.ENROLLMENT_CANCELLED,
            before=None,
            after=None,
        )
        return EnrollmentResult.ok()

    def status(self, session_id: UUID, user_id: UUID) -> EnrollmentStatus:
        """Report whether the user holds an enrollment for the session."""
        try:
            participant = self.repository.get_participant(session_id, user_id)
        except Exception:
            logger.exception(
                "Enrollment lookup failed",
                extra={"session_id": str(session_id), "user_id": str(user_id)},
            )
            return EnrollmentStatus(enrolled=False, error_kind=ErrorKind.INTERNAL)
        if participant is None:
            return EnrollmentStatus(enrolled=False)
        return EnrollmentStatus(enrolled=True, status=participant.status)
