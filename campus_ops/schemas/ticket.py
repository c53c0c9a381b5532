"""
Pydantic schemas for maintenance tickets and their comments.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from campus_ops.models.enums import TicketPriority, TicketStatus


class TicketCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    facility_id: Optional[int] = None
    location: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    priority: TicketPriority = TicketPriority.MEDIUM
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)


class TicketAssign(BaseModel):
    technician_id: int
    technician_name: Optional[str] = Field(None, max_length=150)


class TicketStatusUpdate(BaseModel):
    status: TicketStatus
    resolution_notes: Optional[str] = None
    rejection_reason: Optional[str] = None


class TicketResponse(BaseModel):
    id: int
    title: str
    facility_id: Optional[int]
    facility_name: Optional[str]
    location: str
    category: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    reported_by: int
    reported_by_name: Optional[str]
    assigned_to: Optional[int]
    assigned_to_name: Optional[str]
    contact_email: Optional[str]
    contact_phone: Optional[str]
    attachment_urls: list[str]
    resolution_notes: Optional[str]
    rejection_reason: Optional[str]
    resolved_at: Optional[datetime]
    closed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentUpdate(CommentCreate):
    pass


class CommentResponse(BaseModel):
    id: int
    ticket_id: int
    content: str
    author_id: int
    author_name: Optional[str]
    author_role: Optional[str]
    edited: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
