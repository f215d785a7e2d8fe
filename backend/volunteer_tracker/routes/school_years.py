import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_tracker.acl import ROLE_ADMIN
from volunteer_tracker.auth import require_role
from volunteer_tracker.database import get_session
from volunteer_tracker.models import User
from volunteer_tracker.school_year import SchoolYearResolver, get_school_year_resolver
from volunteer_tracker.schemas import SchoolYearCreate, SchoolYearRead, SchoolYearUpdate
from volunteer_tracker.crud import (
    get_all_school_years,
    create_school_year,
    update_school_year,
    activate_school_year,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/school-years", tags=["admin"])


@router.get("", response_model=List[SchoolYearRead])
async def admin_list_school_years(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    return await get_all_school_years(db)


@router.post("", response_model=SchoolYearRead, status_code=status.HTTP_201_CREATED)
async def admin_create_school_year(
    data: SchoolYearCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    """Create a school year.  It stays inactive until activated."""
    year = await create_school_year(
        db,
        name=data.name,
        start_date=data.start_date,
        end_date=data.end_date,
        required_hours=data.required_hours,
        hourly_rate=data.hourly_rate,
    )
    logger.info("School year %s (%s) created by user %s", year.id, year.name, current_user.id)
    return year


@router.put("/{school_year_id}", response_model=SchoolYearRead)
async def admin_update_school_year(
    school_year_id: str,
    data: SchoolYearUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
    resolver: SchoolYearResolver = Depends(get_school_year_resolver),
):
    year = await update_school_year(
        db, school_year_id, data.model_dump(exclude_unset=True)
    )
    if year.is_active:
        resolver.invalidate()
    logger.info("School year %s updated by user %s", school_year_id, current_user.id)
    return year


@router.put("/{school_year_id}/activate", response_model=SchoolYearRead)
async def admin_activate_school_year(
    school_year_id: str,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
    resolver: SchoolYearResolver = Depends(get_school_year_resolver),
):
    """Make this the only active year and enrol every active family in it."""
    year, created = await activate_school_year(db, school_year_id)
    resolver.invalidate()
    logger.info(
        "School year %s activated by user %s (%d families enrolled)",
        school_year_id,
        current_user.id,
        created,
    )
    return year
