"""
Pydantic schemas for user and authentication request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from campus_ops.models.enums import Role


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=8, max_length=128)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class GoogleCredential(BaseModel):
    """ID token (`credential`) returned to the browser by Google Identity Services."""

    credential: str = Field(..., min_length=1, max_length=4096)


class GoogleSignIn(BaseModel):
    """Profile extracted from a verified Google ID token."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=150)
    avatar_url: Optional[str] = Field(None, max_length=500)
    provider_id: str = Field(..., min_length=1, max_length=255)


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    avatar_url: Optional[str] = None
    provider: str
    roles: list[Role]
    enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserRolesUpdate(BaseModel):
    roles: list[Role] = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
