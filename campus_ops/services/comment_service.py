"""
Comments on maintenance tickets.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.exceptions import Forbidden, NotFound, ValidationError
from campus_ops.core.logging import get_logger
from campus_ops.core.permissions import Operation, Principal, require
from campus_ops.models.comment import Comment
from campus_ops.models.enums import NotificationType, ReferenceType
from campus_ops.services import notification_service
from campus_ops.services.ticket_service import get_ticket, get_ticket_record

logger = get_logger(__name__)


def _clean(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content is required")
    return content


async def add_comment(db: AsyncSession, principal: Principal, ticket_id: int, content: str) -> Comment:
    require(principal, Operation.COMMENT_CREATE)
    content = _clean(content)
    ticket = await get_ticket_record(db, ticket_id)

    comment = Comment(
        ticket_id=ticket.id,
        content=content,
        author_id=principal.id,
        author_name=principal.name,
        author_role=principal.primary_role.value,
        edited=False,
    )
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    logger.info("comment_added", comment_id=comment.id, ticket_id=ticket.id)

    recipients = [
        uid for uid in (ticket.reported_by, ticket.assigned_to)
        if uid is not None and uid != principal.id
    ]
    await notification_service.emit_many(
        db,
        recipients,
        NotificationType.COMMENT_ADDED,
        "New Comment",
        f"{principal.name} commented on ticket: {ticket.title}",
        ticket.id,
        ReferenceType.TICKET,
    )
    return comment


async def list_ticket_comments(db: AsyncSession, principal: Principal, ticket_id: int) -> list[Comment]:
    """Readable by whoever may read the ticket itself."""
    await get_ticket(db, principal, ticket_id)
    result = await db.execute(
        select(Comment)
        .where(Comment.ticket_id == ticket_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    return list(result.scalars().all())


async def _get_comment(db: AsyncSession, comment_id: int) -> Comment:
    result = await db.execute(select(Comment).where(Comment.id == comment_id))
    comment = result.scalar_one_or_none()
    if not comment:
        raise NotFound(f"Comment {comment_id} not found", comment_id=comment_id)
    return comment


async def update_comment(db: AsyncSession, principal: Principal, comment_id: int, content: str) -> Comment:
    require(principal, Operation.COMMENT_EDIT_OWN)
    content = _clean(content)
    comment = await _get_comment(db, comment_id)
    if comment.author_id != principal.id:
        raise Forbidden("You can only edit your own comments", comment_id=comment_id)

    comment.content = content
    comment.edited = True
    await db.commit()
    await db.refresh(comment)
    logger.info("comment_updated", comment_id=comment.id)
    return comment


async def delete_comment(db: AsyncSession, principal: Principal, comment_id: int) -> None:
    comment = await _get_comment(db, comment_id)
    if comment.author_id == principal.id:
        require(principal, Operation.COMMENT_DELETE_OWN)
    else:
        require(principal, Operation.COMMENT_DELETE_ANY)

    await db.delete(comment)
    await db.commit()
    logger.info("comment_deleted", comment_id=comment_id, actor_id=principal.id)
