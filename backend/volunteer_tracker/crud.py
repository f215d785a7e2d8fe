"""Asynchronous CRUD helpers for the application's data models.

Each function in this module encapsulates a specific database operation
using SQLModel and SQLAlchemy.  Centralizing the logic keeps route
handlers light and makes behavior easier to test.  Business rule
violations are raised as :mod:`volunteer_tracker.exceptions` errors; every
multi-row write commits once at the end and rolls back on failure.
"""

import logging
from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import select

from volunteer_tracker.acl import ROLE_ADMIN, is_valid_role
from volunteer_tracker.accounting import is_quarter_hour_multiple, to_decimal
from volunteer_tracker.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from volunteer_tracker.models import (
    User,
    Family,
    SchoolYear,
    FamilyYearStatus,
    TaskCategory,
    Task,
)

logger = logging.getLogger(__name__)

# Largest quarter-hour value the tasks.hours column (6 digits, 2 places) holds
MAX_TASK_HOURS = Decimal("9999.75")


async def _commit_or_conflict(db: AsyncSession, message: str) -> None:
    """Commit, turning a unique-constraint violation into ``ConflictError``."""
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(message)


def _clean_name(name: Optional[str], field: str = "name", label: str = "Name") -> str:
    if name is None or not name.strip():
        raise ValidationError(f"{label} is required", field=field)
    return name.strip()


# --- users -----------------------------------------------------------------


async def get_user(db: AsyncSession, user_id: str) -> User | None:
    """Load a user by primary key."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Return a user by email (case-insensitive) or ``None`` if not found."""
    result = await db.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    )
    return result.scalars().first()


async def get_all_users(db: AsyncSession) -> list[User]:
    """Return all users ordered by email with their family loaded."""
    result = await db.execute(
        select(User)
        .options(selectinload(User.family))
        .order_by(User.email)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def create_user(db: AsyncSession, user: User) -> User:
    """Persist a new user record."""
    db.add(user)
    await _commit_or_conflict(db, "User already exists")
    await db.refresh(user)
    return user


async def _get_assignable_family(db: AsyncSession, family_id: str) -> Family:
    family = await get_family(db, family_id)
    if family is None:
        raise NotFoundError("Family not found", field="family_id")
    if family.archived_at is not None:
        raise ValidationError(
            "Cannot assign user to archived family", field="family_id"
        )
    return family


async def admin_create_user(
    db: AsyncSession,
    user_id: str,
    email: str,
    role: str,
    family_id: Optional[str] = None,
) -> User:
    """Pre-provision a user so they land in the right family on sign-in."""
    user_id = _clean_name(user_id, field="id", label="User id")
    if not is_valid_role(role):
        raise ValidationError(f"Unknown role '{role}'", field="role")
    if await get_user(db, user_id):
        raise ConflictError("A user with this id already exists")
    if await get_user_by_email(db, email):
        raise ConflictError("A user with this email already exists")
    if family_id:
        await _get_assignable_family(db, family_id)
    user = User(id=user_id, email=email, role=role, family_id=family_id or None)
    return await create_user(db, user)


async def update_user(
    db: AsyncSession, acting_user: User, user_id: str, changes: dict
) -> User:
    """Change a user's role and/or family assignment.

    ``changes`` holds only the fields the client sent; a ``family_id`` of
    ``None`` clears the assignment.
    """
    if not changes:
        raise ValidationError("No valid fields to update")
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if "family_id" in changes:
        if user.id == acting_user.id:
            raise ValidationError(
                "Cannot change your own family assignment", field="family_id"
            )
        family_id = changes["family_id"] or None
        if family_id:
            await _get_assignable_family(db, family_id)
        user.family_id = family_id

    if "role" in changes:
        role = changes["role"]
        if role is None or not is_valid_role(role):
            raise ValidationError(f"Unknown role '{role}'", field="role")
        if user.id == acting_user.id and role != user.role:
            raise ValidationError("Cannot change your own role", field="role")
        user.role = role

    user.updated_at = datetime.utcnow()
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def archive_user(db: AsyncSession, user_id: str) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.role == ROLE_ADMIN:
        raise ForbiddenError("Cannot archive an admin user")
    if user.archived_at is not None:
        raise ValidationError("User is already archived")
    now = datetime.utcnow()
    user.archived_at = now
    user.updated_at = now
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def restore_user(db: AsyncSession, user_id: str) -> User:
    """Un-archive a single user; their family must be active."""
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.archived_at is None:
        raise ValidationError("User is not archived")
    if user.family_id:
        family = await get_family(db, user.family_id)
        if family is not None and family.archived_at is not None:
            raise ConflictError(
                "Cannot restore user: their family is archived; restore the family first"
            )
    user.archived_at = None
    user.updated_at = datetime.utcnow()
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


# --- families --------------------------------------------------------------


async def get_family(db: AsyncSession, family_id: str) -> Family | None:
    result = await db.execute(select(Family).where(Family.id == family_id))
    return result.scalar_one_or_none()


async def get_families_with_members(db: AsyncSession) -> list[Family]:
    """Return every family (archived included) ordered by name."""
    result = await db.execute(
        select(Family)
        .options(selectinload(Family.users))
        .order_by(Family.name)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def find_active_family_by_name(
    db: AsyncSession, name: str, exclude_id: Optional[str] = None
) -> Family | None:
    """Find a non-archived family whose name matches, ignoring case."""
    stmt = select(Family).where(
        func.lower(Family.name) == name.strip().lower(),
        Family.archived_at.is_(None),
    )
    if exclude_id is not None:
        stmt = stmt.where(Family.id != exclude_id)
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_family_year_status(
    db: AsyncSession, family_id: str, school_year_id: str
) -> FamilyYearStatus | None:
    result = await db.execute(
        select(FamilyYearStatus).where(
            FamilyYearStatus.family_id == family_id,
            FamilyYearStatus.school_year_id == school_year_id,
        )
    )
    return result.scalar_one_or_none()


async def ensure_family_year_status(
    db: AsyncSession, family_id: str, school_year_id: str
) -> bool:
    """Add a zeroed status row if missing.  Does not commit.

    Returns ``True`` when a row was added.
    """
    if await get_family_year_status(db, family_id, school_year_id):
        return False
    db.add(
        FamilyYearStatus(
            family_id=family_id,
            school_year_id=school_year_id,
            is_active=True,
            total_hours=Decimal("0"),
        )
    )
    return True


async def create_family(db: AsyncSession, name: str, school_year_id: Optional[str]) -> Family:
    """Create a family and, if a year is active, its status row for that year."""
    name = _clean_name(name, label="Family name")
    if await find_active_family_by_name(db, name):
        raise ValidationError("A family with this name already exists", field="name")
    family = Family(name=name)
    db.add(family)
    if school_year_id:
        await ensure_family_year_status(db, family.id, school_year_id)
    await _commit_or_conflict(db, "Family could not be created")
    await db.refresh(family)
    return family


async def rename_family(db: AsyncSession, family_id: str, name: str) -> Family:
    name = _clean_name(name, label="Family name")
    family = await get_family(db, family_id)
    if family is None:
        raise NotFoundError("Family not found")
    if await find_active_family_by_name(db, name, exclude_id=family.id):
        raise ValidationError("A family with this name already exists", field="name")
    family.name = name
    family.updated_at = datetime.utcnow()
    db.add(family)
    await db.commit()
    await db.refresh(family)
    return family


async def archive_family(db: AsyncSession, family_id: str) -> Family:
    """Archive a family and every member user in one transaction."""
    family = await get_family(db, family_id)
    if family is None:
        raise NotFoundError("Family not found")
    if family.archived_at is not None:
        raise ValidationError("Family is already archived")
    now = datetime.utcnow()
    try:
        family.archived_at = now
        family.updated_at = now
        db.add(family)
        await db.execute(
            update(User)
            .where(User.family_id == family_id, User.archived_at.is_(None))
            .values(archived_at=now, updated_at=now)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(family)
    return family


async def restore_family(db: AsyncSession, family_id: str) -> Family:
    """Un-archive a family.  Member users stay archived."""
    family = await get_family(db, family_id)
    if family is None:
        raise NotFoundError("Family not found")
    if family.archived_at is None:
        raise ValidationError("Family is not archived")
    if await find_active_family_by_name(db, family.name, exclude_id=family.id):
        raise ConflictError("Cannot restore: a family with this name already exists")
    family.archived_at = None
    family.updated_at = datetime.utcnow()
    db.add(family)
    await db.commit()
    await db.refresh(family)
    return family


# --- task categories -------------------------------------------------------


async def get_active_categories(db: AsyncSession) -> list[TaskCategory]:
    result = await db.execute(
        select(TaskCategory)
        .where(TaskCategory.is_active == True)  # noqa: E712
        .order_by(TaskCategory.name)
    )
    return result.scalars().all()


async def get_all_categories(db: AsyncSession) -> list[TaskCategory]:
    result = await db.execute(select(TaskCategory).order_by(TaskCategory.created_at))
    return result.scalars().all()


async def get_category(db: AsyncSession, category_id: str) -> TaskCategory | None:
    result = await db.execute(select(TaskCategory).where(TaskCategory.id == category_id))
    return result.scalar_one_or_none()


async def create_category(db: AsyncSession, name: str, is_active: bool = True) -> TaskCategory:
    category = TaskCategory(
        name=_clean_name(name, label="Category name"), is_active=is_active
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


async def update_category(db: AsyncSession, category_id: str, changes: dict) -> TaskCategory:
    updates = {}
    if changes.get("name") is not None:
        updates["name"] = _clean_name(changes["name"], label="Category name")
    elif "name" in changes:
        raise ValidationError("Invalid category name", field="name")
    if changes.get("is_active") is not None:
        updates["is_active"] = bool(changes["is_active"])
    if not updates:
        raise ValidationError("No valid fields to update")
    category = await get_category(db, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    for field, value in updates.items():
        setattr(category, field, value)
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


async def archive_category(db: AsyncSession, category_id: str) -> TaskCategory:
    """Soft-delete: the category disappears from the parent picker."""
    category = await get_category(db, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    category.is_active = False
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


# --- school years ----------------------------------------------------------


def _validate_school_year_fields(
    start_date: date, end_date: date, required_hours: int, hourly_rate: Decimal
) -> None:
    if end_date <= start_date:
        raise ValidationError("end_date must be after start_date", field="end_date")
    if required_hours is None or required_hours <= 0:
        raise ValidationError(
            "Required hours must be greater than zero", field="required_hours"
        )
    if hourly_rate is None or to_decimal(hourly_rate) < 0:
        raise ValidationError("Hourly rate cannot be negative", field="hourly_rate")


async def get_all_school_years(db: AsyncSession) -> list[SchoolYear]:
    result = await db.execute(select(SchoolYear).order_by(SchoolYear.created_at))
    return result.scalars().all()


async def get_school_year(db: AsyncSession, school_year_id: str) -> SchoolYear | None:
    result = await db.execute(select(SchoolYear).where(SchoolYear.id == school_year_id))
    return result.scalar_one_or_none()


async def create_school_year(
    db: AsyncSession,
    name: str,
    start_date: date,
    end_date: date,
    required_hours: int = 50,
    hourly_rate: Decimal = Decimal("20.00"),
) -> SchoolYear:
    """Create a school year.  New years always start inactive."""
    name = _clean_name(name, label="School year name")
    _validate_school_year_fields(start_date, end_date, required_hours, hourly_rate)
    year = SchoolYear(
        name=name,
        start_date=start_date,
        end_date=end_date,
        required_hours=required_hours,
        hourly_rate=to_decimal(hourly_rate),
        is_active=False,
    )
    db.add(year)
    await db.commit()
    await db.refresh(year)
    return year


async def update_school_year(db: AsyncSession, school_year_id: str, changes: dict) -> SchoolYear:
    """Apply a partial update.  The caller invalidates the cache if active."""
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        raise ValidationError("No valid fields to update")
    year = await get_school_year(db, school_year_id)
    if year is None:
        raise NotFoundError("School year not found")
    if "name" in changes:
        changes["name"] = _clean_name(changes["name"], label="School year name")
    if "hourly_rate" in changes:
        changes["hourly_rate"] = to_decimal(changes["hourly_rate"])
    _validate_school_year_fields(
        changes.get("start_date", year.start_date),
        changes.get("end_date", year.end_date),
        changes.get("required_hours", year.required_hours),
        changes.get("hourly_rate", year.hourly_rate),
    )
    for field, value in changes.items():
        setattr(year, field, value)
    db.add(year)
    await db.commit()
    await db.refresh(year)
    return year


async def activate_school_year(db: AsyncSession, school_year_id: str) -> tuple[SchoolYear, int]:
    """Make one school year the only active year.

    In a single transaction every year is deactivated, the target is
    activated and each non-archived family gets a status row for it.  Any
    failure rolls the whole thing back, so two active years (or an active
    year with missing status rows) are never committed.  Returns the year
    and the number of status rows created.
    """
    try:
        await db.execute(update(SchoolYear).values(is_active=False))
        year = await get_school_year(db, school_year_id)
        if year is None:
            raise NotFoundError("School year not found")
        year.is_active = True
        db.add(year)

        result = await db.execute(select(Family).where(Family.archived_at.is_(None)))
        created = 0
        for family in result.scalars().all():
            if await ensure_family_year_status(db, family.id, year.id):
                created += 1
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(year)
    logger.info(
        "School year %s activated; %d family status rows created", year.id, created
    )
    return year, created


# --- tasks -----------------------------------------------------------------


def _task_query():
    # populate_existing reloads tasks already in the session after an edit
    return (
        select(Task)
        .options(selectinload(Task.category), selectinload(Task.user))
        .execution_options(populate_existing=True)
    )


async def get_task(db: AsyncSession, task_id: str) -> Task | None:
    result = await db.execute(_task_query().where(Task.id == task_id))
    return result.scalar_one_or_none()


async def get_family_tasks(
    db: AsyncSession, family_id: str, school_year_id: str, limit: Optional[int] = None
) -> list[Task]:
    """Tasks for a family in one year, newest first."""
    stmt = (
        _task_query()
        .where(Task.family_id == family_id, Task.school_year_id == school_year_id)
        .order_by(Task.date.desc(), Task.created_at.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()


async def get_family_total_hours(
    db: AsyncSession, family_id: str, school_year_id: str
) -> Decimal:
    result = await db.execute(
        select(func.sum(Task.hours)).where(
            Task.family_id == family_id, Task.school_year_id == school_year_id
        )
    )
    return to_decimal(result.scalar())


async def refresh_family_year_hours(
    db: AsyncSession, family_id: str, school_year_id: str
) -> FamilyYearStatus:
    """Recompute the status row's ``total_hours`` from the task table.

    Runs inside the caller's transaction and does not commit.
    """
    total = await get_family_total_hours(db, family_id, school_year_id)
    status_row = await get_family_year_status(db, family_id, school_year_id)
    if status_row is None:
        status_row = FamilyYearStatus(
            family_id=family_id, school_year_id=school_year_id, is_active=True
        )
    status_row.total_hours = total
    db.add(status_row)
    return status_row


async def validate_task_input(
    db: AsyncSession,
    hours,
    task_date: date,
    category_id: str,
    today: Optional[date] = None,
) -> TaskCategory:
    """Check hours, date and category before any task write."""
    hours = to_decimal(hours)
    if hours <= 0 or not is_quarter_hour_multiple(hours):
        raise ValidationError(
            "Hours must be positive and in 0.25 increments", field="hours"
        )
    if hours > MAX_TASK_HOURS:
        raise ValidationError(
            f"Hours cannot exceed {MAX_TASK_HOURS}", field="hours"
        )
    if task_date > (today or date.today()):
        raise ValidationError("Date cannot be in the future", field="date")
    category = await get_category(db, category_id)
    if category is None or not category.is_active:
        raise ValidationError("Invalid or inactive category", field="category_id")
    return category


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    return description.strip() or None


async def create_task(
    db: AsyncSession,
    user: User,
    school_year_id: str,
    hours,
    task_date: date,
    category_id: str,
    description: Optional[str] = None,
    today: Optional[date] = None,
) -> Task:
    """Log a task for the user's family in the given (active) year."""
    if not user.family_id:
        raise ForbiddenError("You must belong to a family to log hours")
    await validate_task_input(db, hours, task_date, category_id, today=today)
    task = Task(
        family_id=user.family_id,
        school_year_id=school_year_id,
        user_id=user.id,
        category_id=category_id,
        hours=to_decimal(hours),
        date=task_date,
        description=_clean_description(description),
    )
    try:
        db.add(task)
        await refresh_family_year_hours(db, task.family_id, school_year_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return await get_task(db, task.id)


async def _get_owned_task(
    db: AsyncSession, user: User, school_year_id: str, task_id: str
) -> Task:
    task = await get_task(db, task_id)
    if task is None or task.school_year_id != school_year_id:
        raise NotFoundError("Task not found")
    if task.user_id != user.id:
        raise ForbiddenError("You can only change tasks you submitted")
    return task


async def update_task(
    db: AsyncSession,
    user: User,
    school_year_id: str,
    task_id: str,
    hours,
    task_date: date,
    category_id: str,
    description: Optional[str] = None,
    today: Optional[date] = None,
) -> Task:
    task = await _get_owned_task(db, user, school_year_id, task_id)
    await validate_task_input(db, hours, task_date, category_id, today=today)
    try:
        task.hours = to_decimal(hours)
        task.date = task_date
        task.category_id = category_id
        task.description = _clean_description(description)
        task.updated_at = datetime.utcnow()
        db.add(task)
        await refresh_family_year_hours(db, task.family_id, task.school_year_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return await get_task(db, task_id)


async def delete_task(
    db: AsyncSession, user: User, school_year_id: str, task_id: str
) -> None:
    task = await _get_owned_task(db, user, school_year_id, task_id)
    try:
        await db.delete(task)
        await refresh_family_year_hours(db, task.family_id, task.school_year_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
