"""Populate a fresh database with starter data.

Run with ``python -m volunteer_tracker.seed``.  The script is safe to run
more than once: rows that already exist are left alone.  It creates an
admin placeholder (whose id must match the identity provider's user id),
a sample family, an active 2024-2025 school year and the default task
categories, then prints a development session token for the admin.
"""

import asyncio
import logging
import os
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from volunteer_tracker.auth import create_access_token
from volunteer_tracker.crud import (
    activate_school_year,
    create_category,
    create_family,
    create_school_year,
    create_user,
    find_active_family_by_name,
    get_all_categories,
    get_user,
)
from volunteer_tracker.database import async_session, create_db_and_tables
from volunteer_tracker.models import SchoolYear, User

logger = logging.getLogger(__name__)

SEED_ADMIN_ID = os.getenv("SEED_ADMIN_ID", "admin_1")
SEED_ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
SAMPLE_FAMILY_NAME = "Sample Family"
DEFAULT_CATEGORIES = ["Classroom Help", "Event Setup", "Fundraising"]


async def seed(db: AsyncSession) -> dict:
    """Insert the starter rows and return a summary of what was created."""
    summary = {"admin": False, "family": False, "school_year": False, "categories": 0}

    if await get_user(db, SEED_ADMIN_ID) is None:
        await create_user(db, User(id=SEED_ADMIN_ID, email=SEED_ADMIN_EMAIL, role="admin"))
        summary["admin"] = True

    if await find_active_family_by_name(db, SAMPLE_FAMILY_NAME) is None:
        await create_family(db, SAMPLE_FAMILY_NAME, None)
        summary["family"] = True

    result = await db.execute(select(SchoolYear).where(SchoolYear.name == "2024-2025"))
    year = result.scalars().first()
    if year is None:
        year = await create_school_year(
            db,
            name="2024-2025",
            start_date=date(2024, 8, 15),
            end_date=date(2025, 6, 15),
            required_hours=50,
            hourly_rate=Decimal("20.00"),
        )
        summary["school_year"] = True
    result = await db.execute(select(SchoolYear).where(SchoolYear.is_active == True))  # noqa: E712
    if result.scalars().first() is None:
        # Activation also creates the sample family's status row.
        await activate_school_year(db, year.id)

    existing = {c.name for c in await get_all_categories(db)}
    for name in DEFAULT_CATEGORIES:
        if name not in existing:
            await create_category(db, name)
            summary["categories"] += 1
    return summary


async def main() -> None:
    await create_db_and_tables()
    async with async_session() as session:
        summary = await seed(session)
    logger.info("Seed complete: %s", summary)
    token = create_access_token({"sub": SEED_ADMIN_ID, "email": SEED_ADMIN_EMAIL})
    print(f"Development admin token: {token}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
