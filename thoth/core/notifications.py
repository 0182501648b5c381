"""
Transient user-facing notifications (toasts).
"""

import logging
import uuid
from collections import deque
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Deque, List, Optional

from pydantic import BaseModel, Field

from ..models.chat import utc_now

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    created_at: datetime = Field(default_factory=utc_now)
    ttl_seconds: float = 5.0

    def is_visible(self, now: datetime) -> bool:
        return now < self.created_at + timedelta(seconds=self.ttl_seconds)


NotificationListener = Callable[[Notification], None]


class Notifier:
    """Keeps a bounded history of notifications and fans them out to listeners."""

    def __init__(self, history_size: int = 20, ttl_seconds: float = 5.0):
        self._history: Deque[Notification] = deque(maxlen=history_size)
        self._listeners: List[NotificationListener] = []
        self.ttl_seconds = ttl_seconds

    def subscribe(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> Notification:
        notification = Notification(message=message, level=level, ttl_seconds=self.ttl_seconds)
        self._history.append(notification)
        logger.debug(f"Notification [{level.value}]: {message}")
        for listener in list(self._listeners):
            listener(notification)
        return notification

    def error(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.ERROR)

    def warning(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.WARNING)

    def success(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.SUCCESS)

    @property
    def history(self) -> List[Notification]:
        return list(self._history)

    def visible(self, now: Optional[datetime] = None) -> List[Notification]:
        """Notifications whose time-to-live has not run out."""
        now = now or utc_now()
        return [n for n in self._history if n.is_visible(now)]

    def dismiss(self, notification_id: str) -> None:
        self._history = deque(
            (n for n in self._history if n.id != notification_id), maxlen=self._history.maxlen
        )
