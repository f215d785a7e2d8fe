from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class FamilyCreate(BaseModel):
    name: str


class FamilyUpdate(BaseModel):
    name: str


class FamilyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    archived_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class FamilyMember(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: str
    archived_at: Optional[datetime] = None


class FamilyWithMembers(FamilyRead):
    users: List[FamilyMember] = []


class FamilyActionResponse(BaseModel):
    message: str
    family: FamilyRead
