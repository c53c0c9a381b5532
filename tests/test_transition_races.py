"""
Competing lifecycle transitions on the same booking or ticket.

Each actor uses its own session, as separate API requests would. The
interleaved tests commit the competing transition after the first actor has
read the row, so its status compare-and-swap is guaranteed to lose.
"""

import asyncio
from datetime import time

import pytest
from sqlalchemy import select

from campus_ops.core.exceptions import InvalidTransition
from campus_ops.models.booking import Booking
from campus_ops.models.enums import BookingStatus, NotificationType, Role, TicketStatus
from campus_ops.models.notification import Notification
from campus_ops.models.ticket import Ticket
from campus_ops.services import booking_service, ticket_service
from tests.conftest import BOOKING_DATE, create_user, principal_for


async def _pending_booking(db, facility, owner) -> Booking:
    booking = Booking(
        facility_id=facility.id,
        facility_name=facility.name,
        user_id=owner.id,
        user_name=owner.name,
        date=BOOKING_DATE,
        start_time=time(10),
        end_time=time(11),
        purpose="Thesis defence",
        expected_attendees=6,
        status=BookingStatus.PENDING.value,
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


async def _notification_types(session_factory, user_id: int) -> list[str]:
    async with session_factory() as session:
        result = await session.execute(select(Notification.type).where(Notification.user_id == user_id))
        return sorted(result.scalars().all())


@pytest.mark.asyncio
async def test_approve_loses_to_committed_reject(
    db_session, session_factory, test_facility, test_user, admin_user, monkeypatch
):
    other_admin = await create_user(db_session, "admin2@campus.edu", "Second Admin", [Role.ADMIN])
    booking = await _pending_booking(db_session, test_facility, test_user)

    read = booking_service._get_booking_record
    raced = []

    async def read_then_other_admin_rejects(db, booking_id):
        record = await read(db, booking_id)
        if not raced:
            raced.append(booking_id)
            async with session_factory() as other:
                await booking_service.reject_booking(
                    other, principal_for(other_admin), booking_id, "Room needed for exams"
                )
        return record

    monkeypatch.setattr(booking_service, "_get_booking_record", read_then_other_admin_rejects)

    async with session_factory() as session:
        with pytest.raises(InvalidTransition) as exc_info:
            await booking_service.approve_booking(session, principal_for(admin_user), booking.id)

    assert exc_info.value.detail["current_status"] == BookingStatus.REJECTED.value

    async with session_factory() as session:
        stored = await session.get(Booking, booking.id)
    assert stored.status == BookingStatus.REJECTED.value
    assert stored.reviewed_by == other_admin.id
    assert await _notification_types(session_factory, test_user.id) == [NotificationType.BOOKING_REJECTED.value]


@pytest.mark.asyncio
async def test_simultaneous_approve_and_reject(db_session, session_factory, test_facility, test_user, admin_user):
    other_admin = await create_user(db_session, "admin2@campus.edu", "Second Admin", [Role.ADMIN])
    booking = await _pending_booking(db_session, test_facility, test_user)

    async def approve():
        async with session_factory() as session:
            try:
                return await booking_service.approve_booking(session, principal_for(admin_user), booking.id)
            except InvalidTransition as e:
                return e

    async def reject():
        async with session_factory() as session:
            try:
                return await booking_service.reject_booking(
                    session, principal_for(other_admin), booking.id, "Clashes with maintenance"
                )
            except InvalidTransition as e:
                return e

    results = await asyncio.gather(approve(), reject())

    winners = [r for r in results if isinstance(r, Booking)]
    losers = [r for r in results if isinstance(r, InvalidTransition)]
    assert len(winners) == 1
    assert len(losers) == 1

    owner_notifications = await _notification_types(session_factory, test_user.id)
    assert owner_notifications in (
        [NotificationType.BOOKING_APPROVED.value],
        [NotificationType.BOOKING_REJECTED.value],
    )
    async with session_factory() as session:
        stored = await session.get(Booking, booking.id)
    assert stored.status == winners[0].status


@pytest.mark.asyncio
async def test_ticket_progress_loses_to_committed_reject(
    db_session, session_factory, test_user, technician, admin_user, monkeypatch
):
    ticket = Ticket(
        title="Leaking tap",
        location="Block C washroom",
        category="Plumbing",
        description="Tap will not shut off.",
        priority="HIGH",
        status=TicketStatus.OPEN.value,
        reported_by=test_user.id,
        reported_by_name=test_user.name,
        attachment_urls=[],
    )
    db_session.add(ticket)
    await db_session.commit()
    await db_session.refresh(ticket)

    read = ticket_service.get_ticket_record
    raced = []

    async def read_then_admin_rejects(db, ticket_id):
        record = await read(db, ticket_id)
        if not raced:
            raced.append(ticket_id)
            async with session_factory() as other:
                await ticket_service.update_ticket_status(
                    other, principal_for(admin_user), ticket_id, TicketStatus.REJECTED,
                    rejection_reason="Duplicate of an existing ticket",
                )
        return record

    monkeypatch.setattr(ticket_service, "get_ticket_record", read_then_admin_rejects)

    async with session_factory() as session:
        with pytest.raises(InvalidTransition):
            await ticket_service.update_ticket_status(
                session, principal_for(technician), ticket.id, TicketStatus.IN_PROGRESS
            )

    async with session_factory() as session:
        stored = await session.get(Ticket, ticket.id)
    assert stored.status == TicketStatus.REJECTED.value
    assert stored.version == ticket.version + 1
    assert await _notification_types(session_factory, test_user.id) == [NotificationType.TICKET_REJECTED.value]
