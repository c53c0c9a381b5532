"""
Facility catalogue service handling CRUD and search.
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.exceptions import NotFound
from campus_ops.core.logging import get_logger
from campus_ops.core.permissions import Operation, Principal, require
from campus_ops.models.enums import FacilityStatus, FacilityType
from campus_ops.models.facility import Facility, AvailabilityWindow
from campus_ops.schemas.facility import FacilityCreate, FacilityUpdate
from campus_ops.services.cache_service import invalidate_facility_cache

logger = get_logger(__name__)


def _build_windows(data: FacilityCreate | FacilityUpdate) -> list[AvailabilityWindow]:
    return [
        AvailabilityWindow(
            position=position,
            day_of_week=window.day_of_week.value,
            start_time=window.start_time,
            end_time=window.end_time,
        )
        for position, window in enumerate(data.availability_windows)
    ]


async def create_facility(db: AsyncSession, principal: Principal, data: FacilityCreate) -> Facility:
    require(principal, Operation.FACILITY_MANAGE)

    facility = Facility(
        name=data.name,
        type=data.type.value,
        capacity=data.capacity,
        location=data.location,
        building=data.building,
        floor=data.floor,
        description=data.description,
        amenities=data.amenities,
        image_urls=data.image_urls,
        status=data.status.value,
        created_by=principal.id,
        availability_windows=_build_windows(data),
    )
    db.add(facility)
    await db.commit()
    await db.refresh(facility)
    await invalidate_facility_cache()

    logger.info("facility_created", facility_id=facility.id, name=facility.name, type=facility.type)
    return facility


async def get_facility(db: AsyncSession, facility_id: int) -> Facility:
    """Get a single facility by ID."""
    result = await db.execute(select(Facility).where(Facility.id == facility_id))
    facility = result.scalar_one_or_none()

    if not facility:
        raise NotFound(f"Facility {facility_id} not found", facility_id=facility_id)
    return facility


async def update_facility(
    db: AsyncSession,
    principal: Principal,
    facility_id: int,
    data: FacilityUpdate,
) -> Facility:
    """
    Replace a facility's attributes.

    Changing status away from ACTIVE stops new bookings but leaves existing
    ones untouched; admins reject or cancel those explicitly.
    """
    require(principal, Operation.FACILITY_MANAGE)
    facility = await get_facility(db, facility_id)

    facility.name = data.name
    facility.type = data.type.value
    facility.capacity = data.capacity
    facility.location = data.location
    facility.building = data.building
    facility.floor = data.floor
    facility.description = data.description
    facility.amenities = data.amenities
    facility.image_urls = data.image_urls
    facility.status = data.status.value
    facility.availability_windows = _build_windows(data)
    # In-flight bookings that resolved against the old row must retry
    facility.version = Facility.version + 1

    await db.commit()
    await db.refresh(facility)
    await invalidate_facility_cache()

    logger.info("facility_updated", facility_id=facility.id, status=facility.status)
    return facility


async def delete_facility(db: AsyncSession, principal: Principal, facility_id: int) -> None:
    require(principal, Operation.FACILITY_MANAGE)
    facility = await get_facility(db, facility_id)

    await db.delete(facility)
    await db.commit()
    await invalidate_facility_cache()

    logger.info("facility_deleted", facility_id=facility_id)


async def list_facilities(db: AsyncSession) -> list[Facility]:
    result = await db.execute(select(Facility).order_by(Facility.name.asc(), Facility.id.asc()))
    return list(result.scalars().all())


async def search_facilities(
    db: AsyncSession,
    type: Optional[FacilityType] = None,
    location: Optional[str] = None,
    min_capacity: Optional[int] = None,
    status: Optional[FacilityStatus] = None,
) -> list[Facility]:
    """Filter the catalogue. Every supplied filter must match."""
    query = select(Facility)

    if type is not None:
        query = query.where(Facility.type == type.value)
    if location:
        query = query.where(func.lower(Facility.location).contains(location.lower()))
    if min_capacity is not None:
        query = query.where(Facility.capacity >= min_capacity)
    if status is not None:
        query = query.where(Facility.status == status.value)

    result = await db.execute(query.order_by(Facility.name.asc(), Facility.id.asc()))
    return list(result.scalars().all())
