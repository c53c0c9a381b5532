"""
Notification dispatcher.

Notifications are a side effect of booking/ticket/comment transitions and are
only ever written here. Dispatch runs after the triggering transition has
committed and is fire-and-forget from the caller's point of view: a failed
insert is rolled back, logged and counted, and the transition still stands.

Read-side operations are scoped to the recipient. Touching someone else's
notification is Forbidden, never a silent no-op.
"""

from typing import Iterable, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.exceptions import Forbidden, NotFound
from campus_ops.core.logging import get_logger
from campus_ops.core.metrics import record_notification
from campus_ops.core.permissions import Operation, Principal, require
from campus_ops.models.enums import NotificationType, ReferenceType
from campus_ops.models.notification import Notification
from campus_ops.services.cache_service import (
    get_cached_unread_count,
    invalidate_unread_count,
    set_cached_unread_count,
)

logger = get_logger(__name__)


async def emit(
    db: AsyncSession,
    user_id: int,
    notification_type: NotificationType,
    title: str,
    message: str,
    reference_id: Optional[int] = None,
    reference_type: Optional[ReferenceType] = None,
) -> Optional[Notification]:
    """Record a single notification. Returns None if dispatch failed."""
    created = await emit_many(
        db, [user_id], notification_type, title, message, reference_id, reference_type
    )
    return created[0] if created else None


async def emit_many(
    db: AsyncSession,
    user_ids: Iterable[int],
    notification_type: NotificationType,
    title: str,
    message: str,
    reference_id: Optional[int] = None,
    reference_type: Optional[ReferenceType] = None,
) -> list[Notification]:
    """
    Record one notification per distinct recipient in a single commit.

    Never raises: the transition that triggered the dispatch has already
    committed and must not be reported as failed because of this.
    """
    recipients = list(dict.fromkeys(uid for uid in user_ids if uid is not None))
    if not recipients:
        return []

    notifications = [
        Notification(
            user_id=uid,
            title=title,
            message=message,
            type=notification_type.value,
            reference_id=reference_id,
            reference_type=reference_type.value if reference_type else None,
            read=False,
        )
        for uid in recipients
    ]

    try:
        db.add_all(notifications)
        await db.commit()
    except Exception as e:
        await db.rollback()
        record_notification(notification_type.value, ok=False)
        logger.error(
            "notification_dispatch_failed",
            type=notification_type.value,
            recipients=recipients,
            reference_id=reference_id,
            error=str(e),
        )
        return []

    for _ in notifications:
        record_notification(notification_type.value)
    await invalidate_unread_count(*recipients)

    logger.info(
        "notifications_dispatched",
        type=notification_type.value,
        recipients=recipients,
        reference_id=reference_id,
    )
    return notifications


async def list_notifications(
    db: AsyncSession,
    principal: Principal,
    unread_only: bool = False,
) -> list[Notification]:
    """Caller's notifications, newest first."""
    require(principal, Operation.NOTIFICATION_MANAGE_OWN)
    query = select(Notification).where(Notification.user_id == principal.id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    result = await db.execute(
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    return list(result.scalars().all())


async def get_unread_count(db: AsyncSession, principal: Principal) -> int:
    require(principal, Operation.NOTIFICATION_MANAGE_OWN)
    cached = await get_cached_unread_count(principal.id)
    if cached is not None:
        return cached

    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == principal.id, Notification.read.is_(False))
    )
    count = result.scalar_one()
    await set_cached_unread_count(principal.id, count)
    return count


async def _get_owned(db: AsyncSession, principal: Principal, notification_id: int) -> Notification:
    require(principal, Operation.NOTIFICATION_MANAGE_OWN)
    notification = await db.get(Notification, notification_id)
    if notification is None:
        raise NotFound(f"Notification {notification_id} not found")
    if notification.user_id != principal.id:
        logger.warning(
            "notification_access_denied",
            notification_id=notification_id,
            owner_id=notification.user_id,
        )
        raise Forbidden("You can only access your own notifications")
    return notification


async def mark_as_read(db: AsyncSession, principal: Principal, notification_id: int) -> Notification:
    notification = await _get_owned(db, principal, notification_id)
    if not notification.read:
        notification.read = True
        await db.commit()
        await invalidate_unread_count(principal.id)
    return notification


async def mark_all_as_read(db: AsyncSession, principal: Principal) -> int:
    """Mark every unread notification of the caller read; returns how many changed."""
    require(principal, Operation.NOTIFICATION_MANAGE_OWN)
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == principal.id, Notification.read.is_(False))
        .values(read=True)
    )
    await db.commit()
    await invalidate_unread_count(principal.id)
    logger.info("notifications_marked_read", count=result.rowcount)
    return result.rowcount


async def delete_notification(db: AsyncSession, principal: Principal, notification_id: int) -> None:
    notification = await _get_owned(db, principal, notification_id)
    await db.delete(notification)
    await db.commit()
    await invalidate_unread_count(principal.id)
