"""
Booking endpoints with concurrency-safe conflict checking.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.api.deps import get_current_principal
from campus_ops.core.permissions import Operation, Principal, require
from campus_ops.db.session import get_db
from campus_ops.models.enums import BookingStatus
from campus_ops.schemas.booking import BookingCancel, BookingCreate, BookingReject, BookingResponse
from campus_ops.services import booking_service
from campus_ops.services.facility_service import get_facility

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Request a facility for a time window.

    The conflict check and insert are atomic per facility. Overlapping
    requests get a 409 carrying the colliding booking; the request is
    retried internally if another booking on the same facility committed
    first.
    """
    return await booking_service.create_booking(db, principal, booking_data)


@router.get("/my", response_model=list[BookingResponse])
async def list_my_bookings(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    return await booking_service.get_user_bookings(db, principal)


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.list_bookings(db, principal, booking_status)


@router.get("/facility/{facility_id}", response_model=list[BookingResponse])
async def list_facility_bookings(
    facility_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    require(principal, Operation.FACILITY_READ)
    await get_facility(db, facility_id)
    return await booking_service.get_facility_bookings(db, facility_id)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking(db, principal, booking_id)


@router.put("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.approve_booking(db, principal, booking_id)


@router.put("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: int,
    body: Optional[BookingReject] = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.reject_booking(db, principal, booking_id, body.reason if body else None)


@router.put("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    body: Optional[BookingCancel] = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a pending or approved booking (owner or ADMIN)."""
    return await booking_service.cancel_booking(db, principal, booking_id, body.reason if body else None)
