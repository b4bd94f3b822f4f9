"""Interfaces for collaborators outside the lifecycle engine"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Any, List, Optional
from uuid import UUID

from domain.entities import Notification
from domain.enums import NotificationType


class Clock(ABC):
    """Source of the current time"""

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware UTC time"""
        pass


class NotificationDispatcher(ABC):
    """Delivers notifications to users; fire-and-forget for the engine"""

    @abstractmethod
    async def notify(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """Deliver one notification"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID, unread_only: bool = False) -> List[Notification]:
        """Notifications of a user, newest first"""
        pass

    @abstractmethod
    async def mark_as_read(self, notification_id: UUID) -> Optional[Notification]:
        """Mark a notification read"""
        pass
