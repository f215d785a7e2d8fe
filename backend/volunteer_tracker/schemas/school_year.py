"""Schemas for school years.

``hourly_rate`` stays a ``Decimal`` inside the service so penalty maths is
exact; it is written out as a plain JSON number.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_serializer


class SchoolYearCreate(BaseModel):
    name: str
    start_date: date
    end_date: date
    required_hours: int = 50
    hourly_rate: Decimal = Decimal("20.00")


class SchoolYearUpdate(BaseModel):
    name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    required_hours: Optional[int] = None
    hourly_rate: Optional[Decimal] = None


class SchoolYearRead(BaseModel):
    """Snapshot of a school year row; also what the resolver caches."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    start_date: date
    end_date: date
    required_hours: int
    hourly_rate: Decimal
    is_active: bool
    created_at: datetime

    @field_serializer("hourly_rate")
    def _rate_as_number(self, value: Decimal) -> float:
        return float(value)
