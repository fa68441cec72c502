"""Supabase repository for in-app notifications."""

from dataclasses import dataclass

from supabase import Client

from group_sessions.domain.notifications import NotificationRecord
from group_sessions.services.notifications import NotificationRepository


@dataclass
class SupabaseNotificationRepository(NotificationRepository):
    """Writes notification rows read by the web and push clients."""

    client: Client

    def create_notifications(self, notifications: list[NotificationRecord]) -> None:
        """Insert one row per notification."""
        if not notifications:
            return
        self.client.table("notifications").insert(
            [
                {
                    "user_id": str(notification.user_id),
                    "type": notification.type,
                    "title": notification.title,
                    "message": notification.message,
                    "data": notification.data,
                }
                for notification in notifications
            ]
        ).execute()
