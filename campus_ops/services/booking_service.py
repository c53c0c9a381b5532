"""
Booking lifecycle with concurrency-safe conflict resolution.

STATE MACHINE
=============

    PENDING --approve--> APPROVED --cancel--> CANCELLED
    PENDING --reject---> REJECTED
    PENDING --cancel---> CANCELLED

REJECTED and CANCELLED are terminal. approve/reject are ADMIN-only;
cancel is allowed for the owner or an ADMIN.

CONCURRENCY STRATEGY: Optimistic Locking on the Facility Row
============================================================

Problem:
  Two users request overlapping windows on the same facility at the same
  moment. Both run the overlap query, both see no conflict, both insert.
  Result: double-booked room.

Solution:
  Every admitted booking bumps `facilities.version` inside the same
  transaction as the booking insert.

  1. Read the facility (and its current version), run the conflict resolver
  2. UPDATE facilities SET version = version + 1
     WHERE id = :facility_id AND version = :version_read
  3. If rows_affected == 0 another booking for this facility committed
     between steps 1 and 2 -> roll back, re-run the resolver, retry
  4. INSERT the booking, COMMIT

  The UPDATE takes the facility row lock, so a concurrent writer blocks on it
  and then finds the version moved. On retry the resolver sees the winner's
  booking and answers Conflict. Requests for different facilities never
  contend. Lock-timeout / serialization errors raised by the database are
  treated like a version miss.

Lifecycle transitions are compare-and-swap updates:
  UPDATE bookings SET status = :to ... WHERE id = :id AND status IN (:from)
A stale client that loses the race gets InvalidTransition; nothing is
double-applied.

Notifications are dispatched after the transition commits.
"""

import asyncio
import time
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.config import get_settings
from campus_ops.core.exceptions import Conflict, Forbidden, InvalidTransition, NotFound, ValidationError
from campus_ops.core.logging import get_logger
from campus_ops.core.metrics import (
    booking_latency,
    booking_retries,
    record_booking_attempt,
    record_invalid_transition,
    record_transition,
)
from campus_ops.core.permissions import Operation, Principal, require
from campus_ops.db.base import utcnow
from campus_ops.models.booking import Booking
from campus_ops.models.enums import BookingStatus, FacilityStatus, NotificationType, ReferenceType, Role
from campus_ops.models.facility import Facility
from campus_ops.schemas.booking import BookingCreate
from campus_ops.services import notification_service
from campus_ops.services.auth_service import list_user_ids_with_role
from campus_ops.services.availability_service import check_availability, validate_window

logger = get_logger(__name__)
settings = get_settings()

# Postgres serialization_failure / deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}


class _FacilityVersionMoved(Exception):
    pass


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, (_FacilityVersionMoved, OperationalError)):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        return sqlstate in _RETRYABLE_SQLSTATES
    return False


async def create_booking(db: AsyncSession, principal: Principal, data: BookingCreate) -> Booking:
    """
    Request a facility. Admitted requests are stored as PENDING.
    Retries up to BOOKING_MAX_RETRIES on facility version conflicts.
    """
    require(principal, Operation.BOOKING_CREATE)

    purpose = data.purpose.strip()
    if not purpose:
        raise ValidationError("Purpose is required")
    if data.expected_attendees < 1:
        raise ValidationError("Expected attendees must be at least 1")
    validate_window(data.start_time, data.end_time)

    started = time.perf_counter()
    max_attempts = max(settings.BOOKING_MAX_RETRIES, 1)

    for attempt in range(1, max_attempts + 1):
        try:
            # Step 1: resolve against committed state
            availability = await check_availability(
                db, data.facility_id, data.date, data.start_time, data.end_time
            )
            facility = availability.facility

            if facility.capacity and data.expected_attendees > facility.capacity:
                raise ValidationError(
                    f"Expected attendees ({data.expected_attendees}) exceed facility "
                    f"capacity ({facility.capacity})",
                    capacity=facility.capacity,
                )

            if not availability.admitted:
                record_booking_attempt("conflict")
                logger.warning(
                    "booking_conflict",
                    facility_id=data.facility_id,
                    date=str(data.date),
                    reason=availability.reason,
                    conflicting_booking=availability.conflicting_booking,
                )
                availability.raise_for_conflict()

            # Step 2: claim the facility version (admin edits bump it too)
            current_version = facility.version
            update_result = await db.execute(
                update(Facility)
                .where(
                    Facility.id == facility.id,
                    Facility.version == current_version,
                    Facility.status == FacilityStatus.ACTIVE.value,
                )
                .values(version=Facility.version + 1)
            )
            if update_result.rowcount == 0:
                raise _FacilityVersionMoved()

            # Step 3: insert and commit atomically with the version bump
            booking = Booking(
                facility_id=facility.id,
                facility_name=facility.name,
                user_id=principal.id,
                user_name=principal.name,
                date=data.date,
                start_time=data.start_time,
                end_time=data.end_time,
                purpose=purpose,
                expected_attendees=data.expected_attendees,
                status=BookingStatus.PENDING.value,
            )
            db.add(booking)
            await db.commit()
        except Exception as e:
            if not _is_retryable(e):
                raise
            await db.rollback()
            booking_retries.inc()
            logger.info(
                "booking_retry",
                facility_id=data.facility_id,
                attempt=attempt,
                reason=type(e).__name__,
            )
            if attempt == max_attempts:
                record_booking_attempt("conflict")
                raise Conflict(
                    "Booking failed due to concurrent requests for this facility. Please try again.",
                    reason="CONCURRENT_UPDATE",
                ) from e
            await asyncio.sleep(settings.BOOKING_RETRY_BACKOFF_SECONDS * attempt)
            continue

        booking_latency.observe(time.perf_counter() - started)
        record_booking_attempt("admitted")
        record_transition("booking", BookingStatus.PENDING.value)
        logger.info(
            "booking_created",
            booking_id=booking.id,
            user_id=principal.id,
            facility_id=facility.id,
            date=str(booking.date),
            attempt=attempt,
        )

        admin_ids = await list_user_ids_with_role(db, Role.ADMIN)
        await notification_service.emit_many(
            db,
            [uid for uid in admin_ids if uid != principal.id],
            NotificationType.BOOKING_CREATED,
            "New Booking Request",
            f"{principal.name} requested {facility.name} on {booking.date} "
            f"from {booking.start_time:%H:%M} to {booking.end_time:%H:%M}.",
            booking.id,
            ReferenceType.BOOKING,
        )
        return booking

    # Loop always returns or raises
    raise RuntimeError("unreachable")


async def _get_booking_record(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFound(f"Booking {booking_id} not found", booking_id=booking_id)
    return booking


def _ensure_status(booking: Booking, allowed: Iterable[BookingStatus], action: str) -> None:
    allowed_values = [s.value for s in allowed]
    if booking.status not in allowed_values:
        record_invalid_transition("booking")
        logger.warning(
            "booking_invalid_transition",
            booking_id=booking.id,
            action=action,
            current_status=booking.status,
        )
        raise InvalidTransition(
            f"Cannot {action} a booking in status {booking.status}",
            booking_id=booking.id,
            current_status=booking.status,
            allowed_from=allowed_values,
        )


async def _apply_transition(
    db: AsyncSession,
    booking: Booking,
    allowed_from: Iterable[BookingStatus],
    to_status: BookingStatus,
    action: str,
    **values,
) -> Booking:
    """Compare-and-swap the status; the loser of a race gets InvalidTransition."""
    allowed_from = tuple(allowed_from)
    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking.id,
            Booking.status.in_([s.value for s in allowed_from]),
        )
        .values(
            status=to_status.value,
            version=Booking.version + 1,
            updated_at=utcnow(),
            **values,
        )
    )
    if result.rowcount == 0:
        # Another request moved the booking since we read it
        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking.id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one()
        _ensure_status(booking, allowed_from, action)
        # Status matches again but our write lost; report the race rather than retry
        raise InvalidTransition(
            f"Booking {booking.id} was modified concurrently",
            booking_id=booking.id,
        )

    await db.commit()
    await db.refresh(booking)
    record_transition("booking", to_status.value)
    return booking


async def approve_booking(db: AsyncSession, principal: Principal, booking_id: int) -> Booking:
    require(principal, Operation.BOOKING_APPROVE)
    booking = await _get_booking_record(db, booking_id)
    _ensure_status(booking, [BookingStatus.PENDING], "approve")

    booking = await _apply_transition(
        db, booking, [BookingStatus.PENDING], BookingStatus.APPROVED, "approve",
        reviewed_by=principal.id,
    )
    logger.info("booking_approved", booking_id=booking.id, reviewer_id=principal.id)

    await notification_service.emit(
        db,
        booking.user_id,
        NotificationType.BOOKING_APPROVED,
        "Booking Approved",
        f"Your booking for {booking.facility_name} on {booking.date} has been approved.",
        booking.id,
        ReferenceType.BOOKING,
    )
    return booking


async def reject_booking(
    db: AsyncSession,
    principal: Principal,
    booking_id: int,
    reason: Optional[str],
) -> Booking:
    require(principal, Operation.BOOKING_REJECT)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required")

    booking = await _get_booking_record(db, booking_id)
    _ensure_status(booking, [BookingStatus.PENDING], "reject")

    booking = await _apply_transition(
        db, booking, [BookingStatus.PENDING], BookingStatus.REJECTED, "reject",
        reviewed_by=principal.id,
        rejection_reason=reason,
    )
    logger.info("booking_rejected", booking_id=booking.id, reviewer_id=principal.id)

    await notification_service.emit(
        db,
        booking.user_id,
        NotificationType.BOOKING_REJECTED,
        "Booking Rejected",
        f"Your booking for {booking.facility_name} has been rejected. Reason: {reason}",
        booking.id,
        ReferenceType.BOOKING,
    )
    return booking


async def cancel_booking(
    db: AsyncSession,
    principal: Principal,
    booking_id: int,
    reason: Optional[str] = None,
) -> Booking:
    """
    Cancel a pending or approved booking.
    Owner cancellations notify the admins; admin cancellations notify the owner.
    """
    booking = await _get_booking_record(db, booking_id)

    is_owner = booking.user_id == principal.id
    if is_owner:
        require(principal, Operation.BOOKING_CANCEL_OWN)
    elif not principal.can(Operation.BOOKING_CANCEL_ANY):
        raise Forbidden("You can only cancel your own bookings", booking_id=booking_id)

    _ensure_status(booking, [BookingStatus.PENDING, BookingStatus.APPROVED], "cancel")

    reason = (reason or "").strip() or None
    booking = await _apply_transition(
        db, booking, [BookingStatus.PENDING, BookingStatus.APPROVED], BookingStatus.CANCELLED,
        "cancel",
        cancellation_reason=reason,
    )
    logger.info("booking_cancelled", booking_id=booking.id, actor_id=principal.id, by_owner=is_owner)

    suffix = f" Reason: {reason}" if reason else ""
    if is_owner:
        admin_ids = await list_user_ids_with_role(db, Role.ADMIN)
        await notification_service.emit_many(
            db,
            [uid for uid in admin_ids if uid != principal.id],
            NotificationType.BOOKING_CANCELLED,
            "Booking Cancelled",
            f"{booking.user_name} cancelled their booking for {booking.facility_name} "
            f"on {booking.date}.{suffix}",
            booking.id,
            ReferenceType.BOOKING,
        )
    else:
        await notification_service.emit(
            db,
            booking.user_id,
            NotificationType.BOOKING_CANCELLED,
            "Booking Cancelled",
            f"Your booking for {booking.facility_name} on {booking.date} has been cancelled "
            f"by an administrator.{suffix}",
            booking.id,
            ReferenceType.BOOKING,
        )
    return booking


async def get_booking(db: AsyncSession, principal: Principal, booking_id: int) -> Booking:
    booking = await _get_booking_record(db, booking_id)
    if booking.user_id != principal.id and not principal.can(Operation.BOOKING_READ_ALL):
        raise Forbidden("You can only view your own bookings", booking_id=booking_id)
    return booking


async def get_user_bookings(db: AsyncSession, principal: Principal) -> list[Booking]:
    """Get all bookings for the authenticated user."""
    require(principal, Operation.BOOKING_READ_OWN)
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == principal.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def list_bookings(
    db: AsyncSession,
    principal: Principal,
    status: Optional[BookingStatus] = None,
) -> list[Booking]:
    require(principal, Operation.BOOKING_READ_ALL)
    query = select(Booking)
    if status is not None:
        query = query.where(Booking.status == status.value)
    result = await db.execute(query.order_by(Booking.created_at.desc(), Booking.id.desc()))
    return list(result.scalars().all())


async def get_facility_bookings(db: AsyncSession, facility_id: int) -> list[Booking]:
    """A facility's schedule, in calendar order."""
    result = await db.execute(
        select(Booking)
        .where(Booking.facility_id == facility_id)
        .order_by(Booking.date.asc(), Booking.start_time.asc())
    )
    return list(result.scalars().all())
