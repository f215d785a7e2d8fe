"""Admin console endpoints for families and users.

Every handler depends on ``require_role("admin")``, which re-reads the
caller's record for each request.  Archiving is a soft delete: archived
rows stay in the lists so they can be restored.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_tracker.acl import ROLE_ADMIN
from volunteer_tracker.auth import require_role
from volunteer_tracker.database import get_session
from volunteer_tracker.models import Family, User
from volunteer_tracker.school_year import SchoolYearResolver, get_school_year_resolver
from volunteer_tracker.schemas import (
    AdminUserRead,
    FamilyActionResponse,
    FamilyCreate,
    FamilyMember,
    FamilyRead,
    FamilyUpdate,
    FamilyWithMembers,
    UserActionResponse,
    UserCreate,
    UserRead,
    UserUpdate,
)
from volunteer_tracker.crud import (
    get_families_with_members,
    create_family,
    rename_family,
    archive_family,
    restore_family,
    get_all_users,
    admin_create_user,
    update_user,
    archive_user,
    restore_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _family_with_members(family: Family) -> FamilyWithMembers:
    return FamilyWithMembers(
        id=family.id,
        name=family.name,
        archived_at=family.archived_at,
        created_at=family.created_at,
        updated_at=family.updated_at,
        users=[FamilyMember.model_validate(u) for u in family.users],
    )


def _admin_user(user: User) -> AdminUserRead:
    return AdminUserRead(
        id=user.id,
        email=user.email,
        role=user.role,
        family_id=user.family_id,
        archived_at=user.archived_at,
        created_at=user.created_at,
        updated_at=user.updated_at,
        family_name=user.family.name if user.family else None,
        family_archived_at=user.family.archived_at if user.family else None,
    )


# --- families --------------------------------------------------------------


@router.get("/families", response_model=List[FamilyWithMembers])
async def admin_list_families(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    families = await get_families_with_members(db)
    return [_family_with_members(f) for f in families]


@router.post(
    "/families", response_model=FamilyRead, status_code=status.HTTP_201_CREATED
)
async def admin_create_family(
    data: FamilyCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
    resolver: SchoolYearResolver = Depends(get_school_year_resolver),
):
    year = await resolver.get_current(db)
    family = await create_family(db, data.name, year.id if year else None)
    logger.info("Family %s (%s) created by user %s", family.id, family.name, current_user.id)
    return family


@router.put("/families/{family_id}", response_model=FamilyRead)
async def admin_rename_family(
    family_id: str,
    data: FamilyUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    family = await rename_family(db, family_id, data.name)
    logger.info("Family %s renamed to %s by user %s", family_id, family.name, current_user.id)
    return family


@router.put("/families/{family_id}/archive", response_model=FamilyActionResponse)
async def admin_archive_family(
    family_id: str,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    family = await archive_family(db, family_id)
    logger.info("Family %s and its users archived by user %s", family_id, current_user.id)
    return FamilyActionResponse(
        message="Family and all its users have been archived",
        family=FamilyRead.model_validate(family),
    )


@router.put("/families/{family_id}/restore", response_model=FamilyActionResponse)
async def admin_restore_family(
    family_id: str,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    family = await restore_family(db, family_id)
    logger.info("Family %s restored by user %s", family_id, current_user.id)
    return FamilyActionResponse(
        message="Family has been restored",
        family=FamilyRead.model_validate(family),
    )


# --- users -----------------------------------------------------------------


@router.get("/users", response_model=List[AdminUserRead])
async def admin_list_users(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    users = await get_all_users(db)
    return [_admin_user(u) for u in users]


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def admin_add_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    user = await admin_create_user(
        db, data.id, data.email, data.role, family_id=data.family_id
    )
    logger.info("User %s pre-provisioned by user %s", user.id, current_user.id)
    return user


@router.put("/users/{user_id}", response_model=UserRead)
async def admin_update_user(
    user_id: str,
    data: UserUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    user = await update_user(
        db, current_user, user_id, data.model_dump(exclude_unset=True)
    )
    logger.info("User %s updated by user %s", user_id, current_user.id)
    return user


@router.put("/users/{user_id}/archive", response_model=UserActionResponse)
async def admin_archive_user(
    user_id: str,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    user = await archive_user(db, user_id)
    logger.info("User %s archived by user %s", user_id, current_user.id)
    return UserActionResponse(
        message="User has been archived", user=UserRead.model_validate(user)
    )


@router.put("/users/{user_id}/restore", response_model=UserActionResponse)
async def admin_restore_user(
    user_id: str,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    user = await restore_user(db, user_id)
    logger.info("User %s restored by user %s", user_id, current_user.id)
    return UserActionResponse(
        message="User has been restored", user=UserRead.model_validate(user)
    )
