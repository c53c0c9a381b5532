"""
Maintenance ticket lifecycle.

STATE MACHINE
=============

    OPEN --> IN_PROGRESS --> RESOLVED --> CLOSED
      |           |
      +-----------+--> REJECTED (ADMIN only)

CLOSED and REJECTED are terminal. Assignment is a separate ADMIN operation
that is only legal while the ticket is OPEN and does not move the status.

Entering RESOLVED requires resolution notes; entering REJECTED requires a
reason. Status changes are compare-and-swap updates on the current status,
so two technicians racing on the same ticket cannot both apply a change.
"""

from typing import Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.config import get_settings
from campus_ops.core.exceptions import Forbidden, InvalidTransition, NotFound, ValidationError
from campus_ops.core.logging import get_logger
from campus_ops.core.metrics import record_invalid_transition, record_transition
from campus_ops.core.permissions import Operation, Principal, require
from campus_ops.db.base import utcnow
from campus_ops.models.comment import Comment
from campus_ops.models.enums import NotificationType, ReferenceType, Role, TicketStatus
from campus_ops.models.ticket import Ticket
from campus_ops.schemas.ticket import TicketCreate
from campus_ops.services import notification_service, storage_service
from campus_ops.services.auth_service import get_user, list_user_ids_with_role
from campus_ops.services.facility_service import get_facility

logger = get_logger(__name__)
settings = get_settings()

TICKET_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.OPEN: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.REJECTED}),
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.RESOLVED, TicketStatus.REJECTED}),
    TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED}),
    TicketStatus.CLOSED: frozenset(),
    TicketStatus.REJECTED: frozenset(),
}

_STATUS_NOTIFICATIONS = {
    TicketStatus.RESOLVED: (NotificationType.TICKET_RESOLVED, "has been resolved."),
    TicketStatus.CLOSED: (NotificationType.TICKET_CLOSED, "has been closed."),
    TicketStatus.REJECTED: (NotificationType.TICKET_REJECTED, "has been rejected."),
}


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    return target in TICKET_TRANSITIONS[current]


async def create_ticket(
    db: AsyncSession,
    principal: Principal,
    data: TicketCreate,
    attachment_urls: Optional[list[str]] = None,
) -> Ticket:
    require(principal, Operation.TICKET_CREATE)
    attachment_urls = list(attachment_urls or [])
    if len(attachment_urls) > settings.MAX_TICKET_ATTACHMENTS:
        raise ValidationError(
            f"At most {settings.MAX_TICKET_ATTACHMENTS} attachments are allowed",
            received=len(attachment_urls),
        )

    for field in ("title", "location", "category", "description"):
        if not getattr(data, field).strip():
            raise ValidationError(f"{field.capitalize()} is required", field=field)

    facility_name = None
    if data.facility_id is not None:
        facility = await get_facility(db, data.facility_id)
        facility_name = facility.name

    ticket = Ticket(
        title=data.title.strip(),
        facility_id=data.facility_id,
        facility_name=facility_name,
        location=data.location.strip(),
        category=data.category.strip(),
        description=data.description.strip(),
        priority=data.priority.value,
        status=TicketStatus.OPEN.value,
        reported_by=principal.id,
        reported_by_name=principal.name,
        contact_email=data.contact_email,
        contact_phone=data.contact_phone,
        attachment_urls=attachment_urls,
    )
    db.add(ticket)
    await db.commit()
    await db.refresh(ticket)

    record_transition("ticket", TicketStatus.OPEN.value)
    logger.info(
        "ticket_created",
        ticket_id=ticket.id,
        priority=ticket.priority,
        attachments=len(attachment_urls),
    )

    staff_ids = await list_user_ids_with_role(db, Role.ADMIN)
    staff_ids += await list_user_ids_with_role(db, Role.TECHNICIAN)
    await notification_service.emit_many(
        db,
        [uid for uid in staff_ids if uid != principal.id],
        NotificationType.TICKET_CREATED,
        "New Ticket Reported",
        f"{principal.name} reported '{ticket.title}' ({ticket.priority}) at {ticket.location}.",
        ticket.id,
        ReferenceType.TICKET,
    )
    return ticket


async def get_ticket_record(db: AsyncSession, ticket_id: int) -> Ticket:
    result = await db.execute(select(Ticket).where(Ticket.id == ticket_id))
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise NotFound(f"Ticket {ticket_id} not found", ticket_id=ticket_id)
    return ticket


async def get_ticket(db: AsyncSession, principal: Principal, ticket_id: int) -> Ticket:
    """Reporter, assignee, or staff with ticket-wide read access."""
    ticket = await get_ticket_record(db, ticket_id)
    if principal.id not in (ticket.reported_by, ticket.assigned_to) and not principal.can(
        Operation.TICKET_READ_ALL
    ):
        raise Forbidden("You do not have access to this ticket", ticket_id=ticket_id)
    return ticket


async def _compare_and_swap(
    db: AsyncSession,
    ticket: Ticket,
    expected: TicketStatus,
    **values,
) -> Ticket:
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id == ticket.id, Ticket.status == expected.value)
        .values(version=Ticket.version + 1, updated_at=utcnow(), **values)
    )
    if result.rowcount == 0:
        record_invalid_transition("ticket")
        raise InvalidTransition(
            f"Ticket {ticket.id} was modified concurrently",
            ticket_id=ticket.id,
            expected_status=expected.value,
        )
    await db.commit()
    await db.refresh(ticket)
    return ticket


async def assign_ticket(
    db: AsyncSession,
    principal: Principal,
    ticket_id: int,
    technician_id: int,
    technician_name: Optional[str] = None,
) -> Ticket:
    require(principal, Operation.TICKET_ASSIGN)
    ticket = await get_ticket_record(db, ticket_id)

    if ticket.status != TicketStatus.OPEN.value:
        record_invalid_transition("ticket")
        raise InvalidTransition(
            f"Tickets can only be assigned while OPEN (current: {ticket.status})",
            ticket_id=ticket.id,
            current_status=ticket.status,
        )

    technician = await get_user(db, technician_id)
    if not (technician.has_role(Role.TECHNICIAN) or technician.has_role(Role.ADMIN)):
        raise ValidationError(
            f"User {technician_id} is not a technician",
            technician_id=technician_id,
        )
    name = (technician_name or "").strip() or technician.name

    ticket = await _compare_and_swap(
        db, ticket, TicketStatus.OPEN,
        assigned_to=technician.id,
        assigned_to_name=name,
    )
    logger.info("ticket_assigned", ticket_id=ticket.id, technician_id=technician.id)

    await notification_service.emit(
        db,
        technician.id,
        NotificationType.TICKET_ASSIGNED,
        "New Ticket Assignment",
        f"You have been assigned to ticket: {ticket.title}",
        ticket.id,
        ReferenceType.TICKET,
    )
    return ticket


async def update_ticket_status(
    db: AsyncSession,
    principal: Principal,
    ticket_id: int,
    new_status: TicketStatus,
    resolution_notes: Optional[str] = None,
    rejection_reason: Optional[str] = None,
) -> Ticket:
    require(principal, Operation.TICKET_UPDATE_STATUS)
    if new_status == TicketStatus.REJECTED:
        require(principal, Operation.TICKET_REJECT)

    resolution_notes = (resolution_notes or "").strip()
    rejection_reason = (rejection_reason or "").strip()
    if new_status == TicketStatus.RESOLVED and not resolution_notes:
        raise ValidationError("Resolution notes are required to resolve a ticket")
    if new_status == TicketStatus.REJECTED and not rejection_reason:
        raise ValidationError("A rejection reason is required to reject a ticket")

    ticket = await get_ticket_record(db, ticket_id)
    current = TicketStatus(ticket.status)
    if not can_transition(current, new_status):
        record_invalid_transition("ticket")
        logger.warning(
            "ticket_invalid_transition",
            ticket_id=ticket.id,
            current_status=current.value,
            requested_status=new_status.value,
        )
        raise InvalidTransition(
            f"Cannot move ticket from {current.value} to {new_status.value}",
            ticket_id=ticket.id,
            current_status=current.value,
            allowed=sorted(s.value for s in TICKET_TRANSITIONS[current]),
        )

    values: dict = {"status": new_status.value}
    if new_status == TicketStatus.RESOLVED:
        values.update(resolution_notes=resolution_notes, resolved_at=utcnow())
    elif new_status == TicketStatus.CLOSED:
        values.update(closed_at=utcnow())
    elif new_status == TicketStatus.REJECTED:
        values.update(rejection_reason=rejection_reason)

    ticket = await _compare_and_swap(db, ticket, current, **values)
    record_transition("ticket", new_status.value)
    logger.info(
        "ticket_status_changed",
        ticket_id=ticket.id,
        from_status=current.value,
        to_status=new_status.value,
        actor_id=principal.id,
    )

    notification_type, text = _STATUS_NOTIFICATIONS.get(
        new_status,
        (NotificationType.TICKET_STATUS_CHANGED, f"status changed to {new_status.value}."),
    )
    message = f"Your ticket '{ticket.title}' {text}"
    if new_status == TicketStatus.REJECTED:
        message += f" Reason: {rejection_reason}"
    await notification_service.emit(
        db,
        ticket.reported_by,
        notification_type,
        "Ticket Update",
        message,
        ticket.id,
        ReferenceType.TICKET,
    )
    return ticket


async def delete_ticket(db: AsyncSession, principal: Principal, ticket_id: int) -> None:
    """Hard delete at any status, together with its comments and stored files."""
    require(principal, Operation.TICKET_DELETE)
    ticket = await get_ticket_record(db, ticket_id)
    attachment_urls = list(ticket.attachment_urls or [])

    await db.execute(delete(Comment).where(Comment.ticket_id == ticket.id))
    await db.delete(ticket)
    await db.commit()

    storage_service.delete_files(attachment_urls)
    logger.info("ticket_deleted", ticket_id=ticket_id, actor_id=principal.id)


async def list_user_tickets(db: AsyncSession, principal: Principal) -> list[Ticket]:
    require(principal, Operation.TICKET_READ_OWN)
    result = await db.execute(
        select(Ticket)
        .where(Ticket.reported_by == principal.id)
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
    )
    return list(result.scalars().all())


async def list_assigned_tickets(db: AsyncSession, principal: Principal) -> list[Ticket]:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.assigned_to == principal.id)
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
    )
    return list(result.scalars().all())


async def list_tickets(
    db: AsyncSession,
    principal: Principal,
    status: Optional[TicketStatus] = None,
) -> list[Ticket]:
    require(principal, Operation.TICKET_READ_ALL)
    query = select(Ticket)
    if status is not None:
        query = query.where(Ticket.status == status.value)
    result = await db.execute(query.order_by(Ticket.created_at.desc(), Ticket.id.desc()))
    return list(result.scalars().all())

