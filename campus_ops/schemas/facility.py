"""
Pydantic schemas for facility catalogue request/response validation.
"""

from datetime import datetime, time
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from campus_ops.models.enums import DayOfWeek, FacilityStatus, FacilityType


class AvailabilityWindowSchema(BaseModel):
    day_of_week: DayOfWeek
    start_time: time
    end_time: time

    model_config = {"from_attributes": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def naive_times(cls, v: time) -> time:
        if v.tzinfo is not None:
            raise ValueError("times must not carry a UTC offset")
        return v

    @model_validator(mode="after")
    def check_order(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class FacilityBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: FacilityType
    capacity: int = Field(0, ge=0)
    location: Optional[str] = Field(None, max_length=255)
    building: Optional[str] = Field(None, max_length=120)
    floor: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None
    amenities: list[str] = Field(default_factory=list)
    image_urls: list[str] = Field(default_factory=list)
    status: FacilityStatus = FacilityStatus.ACTIVE
    availability_windows: list[AvailabilityWindowSchema] = Field(default_factory=list)

    @field_validator("amenities")
    @classmethod
    def dedupe_amenities(cls, value: list[str]) -> list[str]:
        # Amenities are a set; keep first-seen order for stable output
        seen: dict[str, None] = {}
        for item in value:
            item = item.strip()
            if item:
                seen.setdefault(item, None)
        return list(seen)


class FacilityCreate(FacilityBase):
    pass


class FacilityUpdate(FacilityBase):
    pass


class FacilityResponse(FacilityBase):
    id: int
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    facility_id: int
    available: bool
    reason: Optional[str] = None
    conflicting_booking: Optional[dict] = None
