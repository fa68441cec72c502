"""Audit logging service."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol
from uuid import UUID

logger = logging.getLogger(__name__)


class AuditAction(StrEnum):
    """Audit event types written by the engine."""

    ENROLLMENT_CREATED = "ENROLLMENT_CREATED"
    ENROLLMENT_CANCELLED = "ENROLLMENT_CANCELLED"
    SESSION_STATUS_CHANGED = "SESSION_STATUS_CHANGED"


class AuditRepository(Protocol):
    """Persistence interface for audit events."""

    def create_event(  # noqa: PLR0913
        self,
        user_id: UUID | None,
        entity_type: str,
        entity_id: UUID,
        event_type: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        """Create an audit event row."""


@dataclass
class AuditService:
    """Service for recording audit events."""

    repository: AuditRepository

    def record_event(  # noqa: PLR0913
        self,
        user_id: UUID | None,
        entity_type: str,
        entity_id: UUID,
        event_type: AuditAction,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        """Persist an audit event; failures are logged, not raised."""
        try:
            self.repository.create_event(
                user_id=user_id,
                entity_type=entity_type,
                entity_id=entity_id,
                event_type=event_type.value,
                before=before,
                after=after,
            )
        except Exception:
            logger.exception(
                "Failed to record audit event",
                extra={"event_type": event_type.value, "entity_id": str(entity_id)},
            )
