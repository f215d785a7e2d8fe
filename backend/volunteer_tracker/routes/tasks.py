import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_tracker.acl import ROLE_PARENT
from volunteer_tracker.auth import require_role
from volunteer_tracker.database import get_session
from volunteer_tracker.exceptions import ForbiddenError
from volunteer_tracker.models import Task, User
from volunteer_tracker.school_year import SchoolYearResolver, get_school_year_resolver
from volunteer_tracker.schemas import (
    TaskCreate,
    TaskRead,
    TaskUpdate,
    TaskCategoryRef,
    TaskSubmitter,
)
from volunteer_tracker.crud import (
    get_family_tasks,
    create_task,
    update_task,
    delete_task,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def task_to_read(task: Task) -> TaskRead:
    return TaskRead(
        id=task.id,
        hours=task.hours,
        date=task.date,
        description=task.description,
        created_at=task.created_at,
        updated_at=task.updated_at,
        user_id=task.user_id,
        category=TaskCategoryRef.model_validate(task.category) if task.category else None,
        submitted_by=TaskSubmitter.model_validate(task.user) if task.user else None,
    )


@router.get("", response_model=List[TaskRead])
async def list_family_tasks(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_PARENT)),
    resolver: SchoolYearResolver = Depends(get_school_year_resolver),
):
    """All tasks logged by the caller's family in the active school year."""
    if not current_user.family_id:
        raise ForbiddenError("You must belong to a family to view tasks")
    year = await resolver.require_current(db)
    tasks = await get_family_tasks(db, current_user.family_id, year.id)
    return [task_to_read(t) for t in tasks]


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def submit_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_PARENT)),
    resolver: SchoolYearResolver = Depends(get_school_year_resolver),
):
    year = await resolver.require_current(db)
    task = await create_task(
        db,
        current_user,
        year.id,
        hours=data.hours,
        task_date=data.date,
        category_id=data.category_id,
        description=data.description,
    )
    logger.info(
        "Task %s (%s h) logged by user %s for family %s",
        task.id,
        task.hours,
        current_user.id,
        task.family_id,
    )
    return task_to_read(task)


@router.put("/{task_id}", response_model=TaskRead)
async def edit_task(
    task_id: str,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_PARENT)),
    resolver: SchoolYearResolver = Depends(get_school_year_resolver),
):
    year = await resolver.require_current(db)
    task = await update_task(
        db,
        current_user,
        year.id,
        task_id,
        hours=data.hours,
        task_date=data.date,
        category_id=data.category_id,
        description=data.description,
    )
    logger.info("Task %s updated by user %s", task_id, current_user.id)
    return task_to_read(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_task(
    task_id: str,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_role(ROLE_PARENT)),
    resolver: SchoolYearResolver = Depends(get_school_year_resolver),
):
    year = await resolver.require_current(db)
    await delete_task(db, current_user, year.id, task_id)
    logger.info("Task %s deleted by user %s", task_id, current_user.id)
    return None
