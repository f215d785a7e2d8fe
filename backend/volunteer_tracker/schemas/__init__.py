"""Convenience imports for all schema classes used by the API."""

from .user import (
    UserRead,
    AdminUserRead,
    UserCreate,
    UserUpdate,
    UserActionResponse,
)
from .family import (
    FamilyCreate,
    FamilyUpdate,
    FamilyRead,
    FamilyMember,
    FamilyWithMembers,
    FamilyActionResponse,
)
from .category import CategoryCreate, CategoryUpdate, CategoryRead
from .school_year import SchoolYearCreate, SchoolYearUpdate, SchoolYearRead
from .task import TaskCreate, TaskUpdate, TaskRead, TaskCategoryRef, TaskSubmitter
from .dashboard import (
    DashboardResponse,
    DashboardFamily,
    DashboardSchoolYear,
    Progress,
    RecentTask,
)

__all__ = [
    "UserRead",
    "AdminUserRead",
    "UserCreate",
    "UserUpdate",
    "UserActionResponse",
    "FamilyCreate",
    "FamilyUpdate",
    "FamilyRead",
    "FamilyMember",
    "FamilyWithMembers",
    "FamilyActionResponse",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryRead",
    "SchoolYearCreate",
    "SchoolYearUpdate",
    "SchoolYearRead",
    "TaskCreate",
    "TaskUpdate",
    "TaskRead",
    "TaskCategoryRef",
    "TaskSubmitter",
    "DashboardResponse",
    "DashboardFamily",
    "DashboardSchoolYear",
    "Progress",
    "RecentTask",
]
