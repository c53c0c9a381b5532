"""
Concurrent overlapping booking requests against one facility.

Each request runs in its own session (as separate API requests would), so
the only coordination between them is the database.
"""

import asyncio
from datetime import time

import pytest
from sqlalchemy import select

from campus_ops.core.exceptions import Conflict
from campus_ops.models.booking import Booking
from campus_ops.models.enums import FacilityStatus
from campus_ops.models.facility import Facility
from campus_ops.schemas.booking import BookingCreate
from campus_ops.schemas.facility import FacilityUpdate
from campus_ops.services import booking_service, facility_service
from campus_ops.services.booking_service import create_booking
from tests.conftest import BOOKING_DATE, create_user, principal_for

CONCURRENT_REQUESTS = 5


async def _attempt(session_factory, principal, facility_id, start, end):
    data = BookingCreate(
        facility_id=facility_id,
        date=BOOKING_DATE,
        start_time=start,
        end_time=end,
        purpose="Exam revision",
        expected_attendees=4,
    )
    async with session_factory() as session:
        try:
            return await create_booking(session, principal, data)
        except Conflict as e:
            return e


@pytest.mark.asyncio
async def test_overlapping_requests_admit_exactly_one(db_session, session_factory, test_facility):
    principals = [
        principal_for(await create_user(db_session, f"racer{i}@campus.edu", f"Racer {i}"))
        for i in range(CONCURRENT_REQUESTS)
    ]

    results = await asyncio.gather(*[
        # Every window overlaps 10:00-10:30 but none is identical
        _attempt(session_factory, p, test_facility.id, time(9, 30 + i), time(10, 30 + i))
        for i, p in enumerate(principals)
    ])

    admitted = [r for r in results if isinstance(r, Booking)]
    conflicts = [r for r in results if isinstance(r, Conflict)]
    assert len(admitted) == 1
    assert len(conflicts) == CONCURRENT_REQUESTS - 1

    async with session_factory() as session:
        stored = (await session.execute(select(Booking))).scalars().all()
        facility = await session.get(Facility, test_facility.id)
    assert len(stored) == 1
    assert stored[0].id == admitted[0].id
    # One version bump per admitted booking
    assert facility.version == test_facility.version + 1


@pytest.mark.asyncio
async def test_disjoint_requests_all_admitted(db_session, session_factory, test_facility):
    users = [
        principal_for(await create_user(db_session, f"slot{i}@campus.edu", f"Slot {i}"))
        for i in range(3)
    ]

    results = await asyncio.gather(*[
        _attempt(session_factory, p, test_facility.id, time(8 + i), time(9 + i))
        for i, p in enumerate(users)
    ])

    assert all(isinstance(r, Booking) for r in results)


@pytest.mark.asyncio
async def test_facility_taken_out_of_service_mid_request(
    db_session, session_factory, test_facility, test_user, admin_user, monkeypatch
):
    """An admin edit committed between the availability check and the insert forces a re-check."""
    resolve = booking_service.check_availability
    calls = []

    async def resolve_then_admin_edits(db, facility_id, *args, **kwargs):
        result = await resolve(db, facility_id, *args, **kwargs)
        calls.append(result.admitted)
        if len(calls) == 1:
            async with session_factory() as admin_session:
                current = await admin_session.get(Facility, facility_id)
                await facility_service.update_facility(
                    admin_session,
                    principal_for(admin_user),
                    facility_id,
                    FacilityUpdate(
                        name=current.name,
                        type=current.type,
                        capacity=current.capacity,
                        location=current.location,
                        status=FacilityStatus.OUT_OF_SERVICE,
                    ),
                )
        return result

    monkeypatch.setattr(booking_service, "check_availability", resolve_then_admin_edits)

    outcome = await _attempt(session_factory, principal_for(test_user), test_facility.id, time(10), time(11))

    assert isinstance(outcome, Conflict)
    assert outcome.detail["reason"] == "FACILITY_UNAVAILABLE"
    # First pass saw the stale ACTIVE row, the retry saw the edit
    assert calls == [True, False]

    async with session_factory() as session:
        assert (await session.execute(select(Booking))).scalars().all() == []
