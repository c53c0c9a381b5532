"""
Availability / conflict resolver.

Decides whether a facility can take a booking for [start_time, end_time) on
a date. A request is admitted only if:

  1. the facility exists and is ACTIVE
  2. the window lies inside one of the facility's availability windows for
     that weekday (no windows declared = no restriction)
  3. no PENDING or APPROVED booking on the same facility and date overlaps it

Overlap is half-open: two windows collide iff
max(start_a, start_b) < min(end_a, end_b), so 10:00-11:00 and 11:00-12:00
can both be held.

This module only reads. Making "check, then insert" atomic per facility is
the booking service's job (see booking_service.create_booking).
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.exceptions import Conflict, ValidationError
from campus_ops.models.booking import Booking
from campus_ops.models.enums import ACTIVE_BOOKING_STATUSES, DayOfWeek, FacilityStatus
from campus_ops.models.facility import Facility
from campus_ops.services.facility_service import get_facility

FACILITY_UNAVAILABLE = "FACILITY_UNAVAILABLE"
OUTSIDE_AVAILABILITY = "OUTSIDE_AVAILABILITY"
BOOKING_OVERLAP = "BOOKING_OVERLAP"


@dataclass(frozen=True)
class Availability:
    """Outcome of an availability check: admit, or conflict with a reason."""

    facility: Facility
    admitted: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    conflicting_booking: Optional[dict] = None

    def raise_for_conflict(self) -> None:
        if self.admitted:
            return
        context = {"reason": self.reason}
        if self.conflicting_booking is not None:
            context["conflicting_booking"] = self.conflicting_booking
        raise Conflict(self.message or "Requested time is not available", **context)


def windows_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    return max(start_a, start_b) < min(end_a, end_b)


def within_availability(facility: Facility, on: date, start_time: time, end_time: time) -> bool:
    windows = facility.availability_windows
    if not windows:
        return True

    weekday = DayOfWeek.from_weekday(on.weekday()).value
    return any(
        w.day_of_week == weekday and w.start_time <= start_time and end_time <= w.end_time
        for w in windows
    )


def booking_summary(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "date": booking.date.isoformat(),
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
        "status": booking.status,
    }


def validate_window(start_time: time, end_time: time) -> None:
    # Availability windows and bookings are wall-clock times at the facility
    if start_time.tzinfo is not None or end_time.tzinfo is not None:
        raise ValidationError(
            "Times must not carry a UTC offset",
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
        )
    if start_time >= end_time:
        raise ValidationError(
            "Start time must be before end time",
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
        )


async def find_conflicting_booking(
    db: AsyncSession,
    facility_id: int,
    on: date,
    start_time: time,
    end_time: time,
    exclude_booking_id: Optional[int] = None,
) -> Optional[Booking]:
    """Earliest active booking overlapping the window, if any."""
    query = select(Booking).where(
        Booking.facility_id == facility_id,
        Booking.date == on,
        Booking.status.in_([s.value for s in ACTIVE_BOOKING_STATUSES]),
        Booking.start_time < end_time,
        Booking.end_time > start_time,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)

    result = await db.execute(query.order_by(Booking.start_time.asc()).limit(1))
    return result.scalar_one_or_none()


async def check_availability(
    db: AsyncSession,
    facility_id: int,
    on: date,
    start_time: time,
    end_time: time,
    exclude_booking_id: Optional[int] = None,
) -> Availability:
    validate_window(start_time, end_time)
    facility = await get_facility(db, facility_id)

    if facility.status != FacilityStatus.ACTIVE.value:
        return Availability(
            facility=facility,
            admitted=False,
            reason=FACILITY_UNAVAILABLE,
            message=f"Facility is not available for booking (status: {facility.status})",
        )

    if not within_availability(facility, on, start_time, end_time):
        return Availability(
            facility=facility,
            admitted=False,
            reason=OUTSIDE_AVAILABILITY,
            message="Requested time is outside the facility's availability windows",
        )

    existing = await find_conflicting_booking(
        db, facility_id, on, start_time, end_time, exclude_booking_id
    )
    if existing is not None:
        summary = booking_summary(existing)
        return Availability(
            facility=facility,
            admitted=False,
            reason=BOOKING_OVERLAP,
            message=(
                f"Time slot conflicts with booking {existing.id} "
                f"({summary['start_time']}-{summary['end_time']})"
            ),
            conflicting_booking=summary,
        )

    return Availability(facility=facility, admitted=True)
