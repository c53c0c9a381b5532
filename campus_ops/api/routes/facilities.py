"""
Facility catalogue endpoints with Redis caching on list operations.
"""

from datetime import date, time
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.api.deps import get_current_principal
from campus_ops.core.logging import get_logger
from campus_ops.core.permissions import Operation, Principal, require
from campus_ops.db.session import get_db
from campus_ops.models.enums import FacilityStatus, FacilityType
from campus_ops.schemas.facility import (
    AvailabilityResponse, FacilityCreate, FacilityResponse, FacilityUpdate,
)
from campus_ops.services import facility_service
from campus_ops.services.availability_service import check_availability
from campus_ops.services.cache_service import get_cached_json, make_facility_list_key, set_cached_json

logger = get_logger(__name__)
router = APIRouter(prefix="/facilities", tags=["Facilities"])


async def _cached_listing(key: str, loader) -> list[dict]:
    cached = await get_cached_json(key)
    if cached is not None:
        logger.info("facility_list_cache_hit", key=key)
        return cached

    facilities = await loader()
    data = [FacilityResponse.model_validate(f).model_dump(mode="json") for f in facilities]
    await set_cached_json(key, data)
    return data


@router.get("/", response_model=list[FacilityResponse])
async def list_facilities(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List the whole catalogue. Cached until the next facility write."""
    require(principal, Operation.FACILITY_READ)
    return await _cached_listing(
        make_facility_list_key(view="all"),
        lambda: facility_service.list_facilities(db),
    )


@router.get("/search", response_model=list[FacilityResponse])
async def search_facilities(
    type: Optional[FacilityType] = Query(None),
    location: Optional[str] = Query(None, max_length=255),
    min_capacity: Optional[int] = Query(None, ge=0),
    status: Optional[FacilityStatus] = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    require(principal, Operation.FACILITY_READ)
    key = make_facility_list_key(
        view="search",
        type=type.value if type else "",
        location=(location or "").lower(),
        min_capacity="" if min_capacity is None else min_capacity,
        status=status.value if status else "",
    )
    return await _cached_listing(
        key,
        lambda: facility_service.search_facilities(db, type, location, min_capacity, status),
    )


@router.get("/{facility_id}", response_model=FacilityResponse)
async def get_facility(
    facility_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    require(principal, Operation.FACILITY_READ)
    return await facility_service.get_facility(db, facility_id)


@router.get("/{facility_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    facility_id: int,
    on: date = Query(..., alias="date"),
    start_time: time = Query(...),
    end_time: time = Query(...),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Dry-run the conflict check for a window without reserving it."""
    require(principal, Operation.FACILITY_READ)
    result = await check_availability(db, facility_id, on, start_time, end_time)
    return AvailabilityResponse(
        facility_id=facility_id,
        available=result.admitted,
        reason=result.reason,
        conflicting_booking=result.conflicting_booking,
    )


@router.post("/", response_model=FacilityResponse, status_code=status.HTTP_201_CREATED)
async def create_facility(
    data: FacilityCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await facility_service.create_facility(db, principal, data)


@router.put("/{facility_id}", response_model=FacilityResponse)
async def update_facility(
    facility_id: int,
    data: FacilityUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await facility_service.update_facility(db, principal, facility_id, data)


@router.delete("/{facility_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_facility(
    facility_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await facility_service.delete_facility(db, principal, facility_id)
