"""
Notification Service
Stores in-app notifications produced by request workflow steps
"""
import logging
from typing import Iterable, List, Optional, Protocol

from pymongo.errors import PyMongoError

from travel_desk.models.notification import NotificationDocument, NotificationMessage

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def publish(self, recipient_ids: Iterable[str], message: NotificationMessage,
                      request_id: Optional[str] = None) -> None: ...


class NotificationService:
    """Writes one notification document per recipient"""

    async def publish(self, recipient_ids: Iterable[str], message: NotificationMessage,
                      request_id: Optional[str] = None) -> None:
        recipients = list(dict.fromkeys(r for r in recipient_ids if r))
        if not recipients:
            return

        docs = [
            NotificationDocument(
                recipient_id=recipient,
                title=message.title,
                message=message.message,
                type=message.type,
                request_id=request_id,
            )
            for recipient in recipients
        ]
        try:
            await NotificationDocument.insert_many(docs)
        except PyMongoError as e:
            # Delivery failures never undo a completed workflow step
            logger.error("Could not store notification '%s' for %s: %s", message.title, recipients, e)

    async def list_for(self, recipient_id: str, unread_only: bool = False, limit: int = 20) -> List[NotificationDocument]:
        query = {"recipient_id": recipient_id}
        if unread_only:
            query["is_read"] = False
        return await NotificationDocument.find(query).sort("-created_at").limit(limit).to_list()

    async def mark_read(self, notification_id, recipient_id: str) -> bool:
        notification = await NotificationDocument.get(notification_id)
        if notification is None or notification.recipient_id != recipient_id:
            return False
        notification.is_read = True
        await notification.save()
        return True

    async def mark_all_read(self, recipient_id: str) -> None:
        await NotificationDocument.find(
            NotificationDocument.recipient_id == recipient_id,
            NotificationDocument.is_read == False
        ).update({"$set": {"is_read": True}})


notification_service = NotificationService()
