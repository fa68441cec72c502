"""Domain models for in-app notifications."""

from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True)
class NotificationRecord:
    """A notification addressed to one user."""

    user_id: UUID
    type: str
    title: str
    message: str
    data: dict[str, object] = field(default_factory=dict)
