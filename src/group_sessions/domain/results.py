"""Typed results returned across the API boundary."""

from dataclasses import dataclass
from enum import StrEnum

from group_sessions.domain.sessions import GroupSession, ParticipantStatus


class ErrorKind(StrEnum):
    """Failure categories for enrollment and status operations."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    FULL = "FULL"
    ALREADY_ENROLLED = "ALREADY_ENROLLED"
    TOO_LATE = "TOO_LATE"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class EnrollmentResult:
    """Outcome of an enroll or cancel call."""

    error_kind: ErrorKind | None = None

    @property
    def success(self) -> bool:
        return self.error_kind is None

    @classmethod
    def ok(cls) -> "EnrollmentResult":
        return cls()

    @classmethod
    def failed(cls, kind: ErrorKind) -> "EnrollmentResult":
        return cls(error_kind=kind)


@dataclass(frozen=True)
class EnrollmentStatus:
    """Whether a user is enrolled in a session, and how."""

    enrolled: bool
    status: ParticipantStatus | None = None
    error_kind: ErrorKind | None = None


@dataclass(frozen=True)
class SessionResult:
    """Outcome of an explicit status change."""

    session: GroupSession | None
    error_kind: ErrorKind | None = None

    @property
    def success(self) -> bool:
        return self.error_kind is None
