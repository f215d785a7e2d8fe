from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_serializer


class TaskCreate(BaseModel):
    hours: Decimal
    date: date
    category_id: str
    description: Optional[str] = None


class TaskUpdate(TaskCreate):
    pass


class TaskCategoryRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class TaskSubmitter(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    hours: Decimal
    date: date
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user_id: str
    category: Optional[TaskCategoryRef] = None
    submitted_by: Optional[TaskSubmitter] = None

    @field_serializer("hours")
    def _hours_as_number(self, value: Decimal) -> float:
        return float(value)
