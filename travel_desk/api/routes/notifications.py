"""
Notification Routes
User-specific alerts and read-tracking
"""
from fastapi import APIRouter, HTTPException, Depends
from typing import List

from beanie import PydanticObjectId

from travel_desk.models.notification import NotificationDocument
from travel_desk.models.user import SessionContext
from travel_desk.api.routes.auth import get_session
from travel_desk.services.notifications import notification_service

router = APIRouter()


@router.get("/", response_model=List[NotificationDocument])
async def get_my_notifications(
    unread_only: bool = False,
    limit: int = 20,
    session: SessionContext = Depends(get_session)
):
    """Get notifications for current user"""
    return await notification_service.list_for(session.user_id, unread_only=unread_only, limit=limit)


@router.put("/read-all")
async def mark_all_as_read(session: SessionContext = Depends(get_session)):
    """Mark all notifications as read"""
    await notification_service.mark_all_read(session.user_id)
    return {"message": "All notifications marked as read"}


@router.put("/{notification_id}/read")
async def mark_as_read(
    notification_id: PydanticObjectId,
    session: SessionContext = Depends(get_session)
):
    """Mark a notification as read"""
    if not await notification_service.mark_read(notification_id, session.user_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification marked as read"}


@router.delete("/clear-all")
async def clear_all_notifications(session: SessionContext = Depends(get_session)):
    """Delete all notifications for the current user"""
    await NotificationDocument.find(NotificationDocument.recipient_id == session.user_id).delete()
    return {"message": "All notifications cleared"}
