"""Resolution of the active school year.

Almost every parent request needs the active school year, and it changes
only when an admin activates or edits one.  ``SchoolYearResolver`` keeps the
last answer in a ``SchoolYearCache`` for a fixed time-to-live and callers
invalidate it after writes.  The resolver lives on ``app.state`` and reaches
handlers through :func:`get_school_year_resolver`.
"""

import os
import time
import logging
from typing import Callable, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from volunteer_tracker.exceptions import ValidationError
from volunteer_tracker.models import SchoolYear
from volunteer_tracker.schemas import SchoolYearRead

logger = logging.getLogger(__name__)

SCHOOL_YEAR_CACHE_TTL_SECONDS = float(
    os.getenv("SCHOOL_YEAR_CACHE_TTL_SECONDS", str(60 * 60))
)


class SchoolYearCache:
    """Single-slot cache with a fixed expiry."""

    def __init__(
        self,
        ttl_seconds: float = SCHOOL_YEAR_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: Optional[SchoolYearRead] = None
        self._expires_at: Optional[float] = None

    def get(self) -> Optional[SchoolYearRead]:
        """Return the cached year, or ``None`` when empty or expired."""
        if self._value is None or self._expires_at is None:
            return None
        if self._clock() >= self._expires_at:
            self.invalidate()
            return None
        return self._value

    def put(self, value: SchoolYearRead) -> None:
        self._value = value
        self._expires_at = self._clock() + self.ttl_seconds

    def invalidate(self) -> None:
        self._value = None
        self._expires_at = None


class SchoolYearResolver:
    """Read-through access to the single active school year."""

    def __init__(self, cache: SchoolYearCache):
        self.cache = cache

    async def get_current(self, db: AsyncSession) -> Optional[SchoolYearRead]:
        cached = self.cache.get()
        if cached is not None:
            return cached
        result = await db.execute(
            select(SchoolYear).where(SchoolYear.is_active == True)  # noqa: E712
        )
        year = result.scalars().first()
        if year is None:
            # Misses are not cached; the next call asks the database again.
            return None
        snapshot = SchoolYearRead.model_validate(year)
        self.cache.put(snapshot)
        return snapshot

    async def require_current(self, db: AsyncSession) -> SchoolYearRead:
        year = await self.get_current(db)
        if year is None:
            raise ValidationError("No active school year")
        return year

    def invalidate(self) -> None:
        logger.debug("School year cache invalidated")
        self.cache.invalidate()


def get_school_year_resolver(request: Request) -> SchoolYearResolver:
    return request.app.state.school_year_resolver
