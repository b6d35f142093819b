from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from app.db.models.notifications import Notification


class NotificationSeverity(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(slots=True)
class NotificationInbox:
    notifications: list[Notification]
    unread_count: int
