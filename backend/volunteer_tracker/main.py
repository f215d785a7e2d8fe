"""FastAPI application entry point.

This module wires together the API routers, configures middleware and
startup tasks, and exposes the ASGI application object used by the
server.  It also owns the process-wide school year resolver, which is
stored on ``app.state`` so handlers and tests share one instance.
"""

import os
import logging
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_tracker.routes import (
    users,
    categories,
    tasks,
    dashboard,
    admin,
    school_years,
)
from volunteer_tracker.database import create_db_and_tables, get_session
from volunteer_tracker.exceptions import ServiceError
from volunteer_tracker.school_year import SchoolYearCache, SchoolYearResolver

# Basic logging configuration.  The log level can be controlled with an
# environment variable so deployments can adjust verbosity without code
# changes.
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL))
logger = logging.getLogger(__name__)

CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]

app = FastAPI(title="Volunteer Hours Tracker")
app.state.school_year_resolver = SchoolYearResolver(SchoolYearCache())

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    """Create any missing tables."""
    await create_db_and_tables()


app.include_router(users.router)
app.include_router(categories.router)
app.include_router(categories.admin_router)
app.include_router(tasks.router)
app.include_router(dashboard.router)
app.include_router(admin.router)
app.include_router(school_years.router)


@app.get("/health")
async def health(db: AsyncSession = Depends(get_session)):
    """Round-trip the database so load balancers see storage outages."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.exception("Health check failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})
    return {"ok": True}


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Render service-layer errors as ``{"detail": {code, message, field}}``."""
    if exc.status_code >= 500:
        logger.error("Service error during request %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler that logs the stack trace once."""
    logger.exception("Unhandled error during request %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )
