"""Task category endpoints.

Parents only ever see active categories; admins manage the full list.
Deleting a category only deactivates it so existing tasks keep their label.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_tracker.acl import ROLE_ADMIN
from volunteer_tracker.auth import get_current_user, require_role
from volunteer_tracker.database import get_session
from volunteer_tracker.models import User
from volunteer_tracker.schemas import CategoryCreate, CategoryRead, CategoryUpdate
from volunteer_tracker.crud import (
    get_active_categories,
    get_all_categories,
    create_category,
    update_category,
    archive_category,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])
admin_router = APIRouter(prefix="/admin/categories", tags=["admin"])


@router.get("", response_model=List[CategoryRead])
async def list_active_categories(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await get_active_categories(db)


@admin_router.get("", response_model=List[CategoryRead])
async def admin_list_categories(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    return await get_all_categories(db)


@admin_router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def admin_create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    category = await create_category(db, data.name, data.is_active)
    logger.info("Category %s created by user %s", category.id, current_user.id)
    return category


@admin_router.put("/{category_id}", response_model=CategoryRead)
async def admin_update_category(
    category_id: str,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    category = await update_category(
        db, category_id, data.model_dump(exclude_unset=True)
    )
    logger.info("Category %s updated by user %s", category_id, current_user.id)
    return category


@admin_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_archive_category(
    category_id: str,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_ADMIN)),
):
    await archive_category(db, category_id)
    logger.info("Category %s archived by user %s", category_id, current_user.id)
    return None
