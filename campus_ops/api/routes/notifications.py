"""
Notification endpoints. Every operation is scoped to the caller's own feed.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.api.deps import get_current_principal
from campus_ops.core.permissions import Principal
from campus_ops.db.session import get_db
from campus_ops.schemas.notification import MessageResponse, NotificationResponse, UnreadCount
from campus_ops.services import notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/", response_model=list[NotificationResponse])
async def list_notifications(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.list_notifications(db, principal)


@router.get("/unread", response_model=list[NotificationResponse])
async def list_unread(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.list_notifications(db, principal, unread_only=True)


@router.get("/count", response_model=UnreadCount)
async def unread_count(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Unread count for the badge poll. Cached in Redis."""
    return UnreadCount(count=await notification_service.get_unread_count(db, principal))


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    count = await notification_service.mark_all_as_read(db, principal)
    return MessageResponse(message=f"{count} notifications marked as read")


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.mark_as_read(db, principal, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await notification_service.delete_notification(db, principal, notification_id)
