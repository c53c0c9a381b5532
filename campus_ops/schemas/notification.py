"""
Pydantic schemas for notifications.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from campus_ops.models.enums import NotificationType, ReferenceType


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    reference_id: Optional[int]
    reference_type: Optional[ReferenceType]
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    count: int


class MessageResponse(BaseModel):
    message: str
