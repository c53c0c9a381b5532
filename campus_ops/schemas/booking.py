"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, time
from typing import Optional
from pydantic import BaseModel, Field

from campus_ops.models.enums import BookingStatus


class BookingCreate(BaseModel):
    facility_id: int
    date: date
    start_time: time
    end_time: time
    purpose: str = Field(..., min_length=1, max_length=2000)
    expected_attendees: int = Field(default=1, ge=1)


class BookingReject(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class BookingResponse(BaseModel):
    id: int
    facility_id: int
    facility_name: Optional[str]
    user_id: int
    user_name: Optional[str]
    date: date
    start_time: time
    end_time: time
    purpose: str
    expected_attendees: int
    status: BookingStatus
    reviewed_by: Optional[int]
    rejection_reason: Optional[str]
    cancellation_reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
