"""Aggregate import for all API route modules."""

from . import (
    users,
    categories,
    tasks,
    dashboard,
    admin,
    school_years,
)

__all__ = [
    "users",
    "categories",
    "tasks",
    "dashboard",
    "admin",
    "school_years",
]
