"""Database models used by the volunteer hours tracker.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic)
and represent users, families, school years, task categories and the
volunteer tasks parents log.  Comments are kept concise to avoid
distracting from the field definitions.
"""

import uuid
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint


def new_id() -> str:
    return uuid.uuid4().hex


class Family(SQLModel, table=True):
    """Household whose parents jointly accumulate volunteer hours."""

    __tablename__ = "families"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    archived_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    users: List["User"] = Relationship(back_populates="family")


class User(SQLModel, table=True):
    """Adult user; ``id`` is the identity provider's subject."""

    __tablename__ = "users"

    id: str = Field(primary_key=True)
    email: str = Field(index=True, unique=True)
    role: str = "parent"  # 'parent' or 'admin'
    family_id: Optional[str] = Field(default=None, foreign_key="families.id")
    archived_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    family: Optional[Family] = Relationship(back_populates="users")


class SchoolYear(SQLModel, table=True):
    """Annual tracking period with an hours requirement and penalty rate."""

    __tablename__ = "school_years"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    start_date: date
    end_date: date
    required_hours: int = 50
    hourly_rate: Decimal = Field(
        default=Decimal("20.00"), max_digits=10, decimal_places=2
    )
    is_active: bool = False  # at most one row is active
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FamilyYearStatus(SQLModel, table=True):
    """Participation of a family in a school year."""

    __tablename__ = "family_year_status"
    __table_args__ = (
        UniqueConstraint(
            "family_id",
            "school_year_id",
            name="uniq_family_year_status_family_year",
        ),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    school_year_id: str = Field(foreign_key="school_years.id", index=True)
    is_active: bool = True
    total_hours: Decimal = Field(
        default=Decimal("0"), max_digits=8, decimal_places=2
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FamilyYearBalance(SQLModel, table=True):
    """Money owed and paid by a family for a school year."""

    __tablename__ = "family_year_balances"
    __table_args__ = (
        UniqueConstraint(
            "family_id",
            "school_year_id",
            name="uniq_family_year_balances_family_year",
        ),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    family_id: str = Field(foreign_key="families.id")
    school_year_id: str = Field(foreign_key="school_years.id")
    hours_owed: Decimal = Field(default=Decimal("0"), max_digits=8, decimal_places=2)
    amount_owed: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    amount_paid: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class TaskCategory(SQLModel, table=True):
    """Kind of volunteer work; archived categories are simply inactive."""

    __tablename__ = "task_categories"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Task(SQLModel, table=True):
    """Single logged volunteer activity."""

    __tablename__ = "tasks"

    id: str = Field(default_factory=new_id, primary_key=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    school_year_id: str = Field(foreign_key="school_years.id", index=True)
    user_id: str = Field(foreign_key="users.id")
    category_id: str = Field(foreign_key="task_categories.id")
    hours: Decimal = Field(max_digits=6, decimal_places=2)  # multiple of 0.25
    date: date
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    category: Optional[TaskCategory] = Relationship()
    user: Optional[User] = Relationship()


class Invitation(SQLModel, table=True):
    """Pending invitation for a parent or admin to join."""

    __tablename__ = "invitations"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str
    family_id: Optional[str] = Field(default=None, foreign_key="families.id")
    token: str = Field(unique=True)
    role: str = "parent"
    expires_at: datetime
    used_at: Optional[datetime] = None
    invited_by: str = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
