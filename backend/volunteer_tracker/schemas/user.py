# volunteer_tracker/schemas/user.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: str
    family_id: Optional[str] = None
    archived_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AdminUserRead(UserRead):
    family_name: Optional[str] = None
    family_archived_at: Optional[datetime] = None


class UserCreate(BaseModel):
    """Pre-provision a user before their first sign-in."""

    id: str
    email: EmailStr
    role: str = "parent"
    family_id: Optional[str] = None


class UserUpdate(BaseModel):
    role: Optional[str] = None
    family_id: Optional[str] = None


class UserActionResponse(BaseModel):
    message: str
    user: UserRead
