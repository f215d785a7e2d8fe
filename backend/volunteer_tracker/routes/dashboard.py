"""Parent dashboard: family progress toward the active year's requirement."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_tracker.accounting import calculate_progress
from volunteer_tracker.acl import ROLE_PARENT
from volunteer_tracker.auth import require_role
from volunteer_tracker.database import get_session
from volunteer_tracker.exceptions import ForbiddenError, NotFoundError
from volunteer_tracker.models import User
from volunteer_tracker.school_year import SchoolYearResolver, get_school_year_resolver
from volunteer_tracker.schemas import (
    DashboardFamily,
    DashboardResponse,
    DashboardSchoolYear,
    Progress,
    RecentTask,
)
from volunteer_tracker.crud import get_family, get_family_tasks, get_family_total_hours

RECENT_TASK_LIMIT = 5

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
async def read_dashboard(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_PARENT)),
    resolver: SchoolYearResolver = Depends(get_school_year_resolver),
):
    if not current_user.family_id:
        raise ForbiddenError("You must belong to a family to view the dashboard")
    year = await resolver.require_current(db)
    family = await get_family(db, current_user.family_id)
    if family is None:
        raise NotFoundError("Family not found")

    total_hours = await get_family_total_hours(db, family.id, year.id)
    summary = calculate_progress(total_hours, year.required_hours, year.hourly_rate)
    recent = await get_family_tasks(db, family.id, year.id, limit=RECENT_TASK_LIMIT)

    return DashboardResponse(
        family=DashboardFamily(id=family.id, name=family.name),
        school_year=DashboardSchoolYear(
            id=year.id,
            name=year.name,
            required_hours=year.required_hours,
            hourly_rate=year.hourly_rate,
            start_date=year.start_date,
            end_date=year.end_date,
        ),
        progress=Progress(
            total_hours=summary.total_hours,
            required_hours=summary.required_hours,
            hours_remaining=summary.hours_remaining,
            progress_percentage=summary.progress_percentage,
            penalty=summary.penalty,
        ),
        recent_tasks=[
            RecentTask(
                id=t.id,
                hours=t.hours,
                date=t.date,
                description=t.description,
                created_at=t.created_at,
            )
            for t in recent
        ],
    )
