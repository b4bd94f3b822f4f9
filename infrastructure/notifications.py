"""In-memory notification store"""
import logging
from typing import Dict, Any, List, Optional
from uuid import UUID

from domain.entities import Notification
from domain.enums import NotificationType
from domain.gateways import NotificationDispatcher

logger = logging.getLogger(__name__)


class InMemoryNotificationDispatcher(NotificationDispatcher):
    """Keeps notifications per user; delivery transport is out of scope"""

    def __init__(self):
        self._storage: Dict[UUID, Notification] = {}

    async def notify(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            metadata=metadata or {}
        )
        self._storage[notification.notification_id] = notification
        logger.debug("Stored %s notification %r for user %s", notification_type.value, title, user_id)
        return notification

    async def find_by_user_id(self, user_id: UUID, unread_only: bool = False) -> List[Notification]:
        results = [
            n for n in self._storage.values()
            if n.user_id == user_id and not (unread_only and n.is_read)
        ]
        return sorted(results, key=lambda n: n.created_at, reverse=True)

    async def mark_as_read(self, notification_id: UUID) -> Optional[Notification]:
        notification = self._storage.get(notification_id)
        if notification is None:
            return None
        notification.mark_read()
        return notification

    async def unread_count(self, user_id: UUID) -> int:
        return len(await self.find_by_user_id(user_id, unread_only=True))
