from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, field_serializer


class DashboardFamily(BaseModel):
    id: str
    name: str


class DashboardSchoolYear(BaseModel):
    id: str
    name: str
    required_hours: int
    hourly_rate: Decimal
    start_date: date
    end_date: date

    @field_serializer("hourly_rate")
    def _rate_as_number(self, value: Decimal) -> float:
        return float(value)


class Progress(BaseModel):
    total_hours: Decimal
    required_hours: int
    hours_remaining: Decimal
    progress_percentage: Decimal
    penalty: Decimal

    @field_serializer(
        "total_hours", "hours_remaining", "progress_percentage", "penalty"
    )
    def _as_number(self, value: Decimal) -> float:
        return float(value)


class RecentTask(BaseModel):
    id: str
    hours: Decimal
    date: date
    description: Optional[str] = None
    created_at: datetime

    @field_serializer("hours")
    def _hours_as_number(self, value: Decimal) -> float:
        return float(value)


class DashboardResponse(BaseModel):
    family: DashboardFamily
    school_year: DashboardSchoolYear
    progress: Progress
    recent_tasks: List[RecentTask]
