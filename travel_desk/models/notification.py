from beanie import Document
from datetime import datetime
from typing import Optional
from enum import Enum
from pydantic import Field

from travel_desk.models.booking import CamelModel


class NotificationType(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationMessage(CamelModel):
    """Notification produced by a workflow step, before it is delivered"""
    title: str
    message: str
    type: NotificationType = NotificationType.INFO


class NotificationDocument(Document):
    recipient_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    request_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "notifications"
        indexes = [
            "recipient_id",
            "created_at",
        ]
