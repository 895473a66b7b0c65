"""User Notifications API - In-app notification bell endpoints"""
from fastapi import APIRouter, Depends, Query

from ...deps import get_current_user_dep
from ....domain.models import ActorContext
from ....services.notification_service import NotificationService
from .schemas import envelope

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def get_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    actor: ActorContext = Depends(get_current_user_dep)
):
    """
    Get notifications for the current user.

    - Sorted by newest first
    - Supports filtering by unread only
    """
    service = NotificationService()
    items, unread_count = service.list_for_user(
        actor,
        unread_only=unread_only,
        skip=skip,
        limit=limit
    )
    return envelope([n.model_dump(mode="json") for n in items], unread_count=unread_count)


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    actor: ActorContext = Depends(get_current_user_dep)
):
    service = NotificationService()
    notification = service.mark_read(actor, notification_id)
    return envelope(notification.model_dump(mode="json"), message="Notification marked as read")
