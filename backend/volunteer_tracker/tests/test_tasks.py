"""Tests for parents logging, editing and deleting volunteer tasks."""

import asyncio
import pathlib
import sys
from datetime import date, timedelta
from decimal import Decimal

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select

# Allow importing the app package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from volunteer_tracker.main import app
from volunteer_tracker.database import get_session
from volunteer_tracker.auth import create_access_token
from volunteer_tracker.models import (
    Family,
    FamilyYearStatus,
    SchoolYear,
    Task,
    TaskCategory,
    User,
)
from volunteer_tracker.school_year import SchoolYearCache, SchoolYearResolver


def _headers(user_id: str) -> dict:
    token = create_access_token(data={"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


async def _setup_test_db(with_active_year: bool = True):
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_session():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.state.school_year_resolver = SchoolYearResolver(SchoolYearCache())

    async with TestSession() as session:
        family = Family(name="Smith")
        other_family = Family(name="Jones")
        year = SchoolYear(
            id="sy-2024",
            name="2024-2025",
            start_date=date(2024, 8, 15),
            end_date=date(2025, 6, 15),
            required_hours=50,
            hourly_rate=Decimal("20.00"),
            is_active=with_active_year,
        )
        session.add_all([family, other_family, year])
        session.add_all(
            [
                User(id="admin_1", email="admin@example.com", role="admin"),
                User(id="parent_1", email="p1@example.com", role="parent", family_id=family.id),
                User(id="parent_2", email="p2@example.com", role="parent", family_id=family.id),
                User(id="parent_3", email="p3@example.com", role="parent", family_id=other_family.id),
                User(id="parent_nofam", email="p4@example.com", role="parent"),
                TaskCategory(id="cat-class", name="Classroom Help"),
                TaskCategory(id="cat-old", name="Retired", is_active=False),
            ]
        )
        await session.commit()
        ids = {"family": family.id, "other_family": other_family.id, "year": year.id}

    return TestSession, ids


def _task_body(hours=1.5, days_ago=1, category_id="cat-class", description="Library"):
    return {
        "hours": hours,
        "date": (date.today() - timedelta(days=days_ago)).isoformat(),
        "category_id": category_id,
        "description": description,
    }


def test_parent_logs_task_and_family_hours_accumulate():
    async def run():
        TestSession, ids = await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post(
                "/tasks", headers=_headers("parent_1"), json=_task_body(hours=0.25)
            )
            assert resp.status_code == 201
            task = resp.json()
            assert task["hours"] == 0.25
            assert task["category"] == {"id": "cat-class", "name": "Classroom Help"}
            assert task["submitted_by"] == {"id": "parent_1", "email": "p1@example.com"}

            resp = await client.post(
                "/tasks",
                headers=_headers("parent_2"),
                json=_task_body(hours=2.5, days_ago=0, description="   "),
            )
            assert resp.status_code == 201
            assert resp.json()["description"] is None

            # Both parents see the whole family's list, newest date first.
            resp = await client.get("/tasks", headers=_headers("parent_1"))
            assert resp.status_code == 200
            listed = resp.json()
            assert [t["hours"] for t in listed] == [2.5, 0.25]

            # Another family sees nothing.
            resp = await client.get("/tasks", headers=_headers("parent_3"))
            assert resp.json() == []

        async with TestSession() as session:
            result = await session.execute(
                select(FamilyYearStatus).where(
                    FamilyYearStatus.family_id == ids["family"],
                    FamilyYearStatus.school_year_id == ids["year"],
                )
            )
            status_row = result.scalar_one()
            assert status_row.total_hours == Decimal("2.75")
            tasks = (await session.execute(select(Task))).scalars().all()
            assert {t.school_year_id for t in tasks} == {ids["year"]}

    asyncio.run(run())


def test_task_validation_rejects_bad_input():
    async def run():
        TestSession, _ = await _setup_test_db()
        transport = ASGITransport(app=app)
        headers = _headers("parent_1")
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/tasks", headers=headers, json=_task_body(hours=0.3))
            assert resp.status_code == 400
            assert resp.json()["detail"]["field"] == "hours"

            resp = await client.post("/tasks", headers=headers, json=_task_body(hours=0))
            assert resp.status_code == 400
            assert resp.json()["detail"]["field"] == "hours"

            resp = await client.post("/tasks", headers=headers, json=_task_body(hours=-1))
            assert resp.status_code == 400

            resp = await client.post("/tasks", headers=headers, json=_task_body(days_ago=-1))
            assert resp.status_code == 400
            assert resp.json()["detail"]["field"] == "date"

            resp = await client.post(
                "/tasks", headers=headers, json=_task_body(category_id="cat-old")
            )
            assert resp.status_code == 400
            assert resp.json()["detail"]["field"] == "category_id"

            resp = await client.post(
                "/tasks", headers=headers, json=_task_body(category_id="missing")
            )
            assert resp.status_code == 400

            # Quarter hours of any size are fine; there is no upper bound.
            for hours in (0.5, 0.75, 24, 30.25):
                resp = await client.post(
                    "/tasks", headers=headers, json=_task_body(hours=hours)
                )
                assert resp.status_code == 201

        async with TestSession() as session:
            tasks = (await session.execute(select(Task))).scalars().all()
            assert len(tasks) == 4

    asyncio.run(run())


def test_task_role_and_family_checks():
    async def run():
        await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/tasks", json=_task_body())
            assert resp.status_code == 401

            resp = await client.post("/tasks", headers=_headers("admin_1"), json=_task_body())
            assert resp.status_code == 403

            resp = await client.post(
                "/tasks", headers=_headers("parent_nofam"), json=_task_body()
            )
            assert resp.status_code == 403

    asyncio.run(run())


def test_no_active_school_year():
    async def run():
        await _setup_test_db(with_active_year=False)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/tasks", headers=_headers("parent_1"), json=_task_body())
            assert resp.status_code == 400
            assert resp.json()["detail"]["message"] == "No active school year"

            resp = await client.get("/tasks", headers=_headers("parent_1"))
            assert resp.status_code == 400

    asyncio.run(run())


def test_only_submitter_can_edit_or_delete():
    async def run():
        TestSession, ids = await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post(
                "/tasks", headers=_headers("parent_1"), json=_task_body(hours=2)
            )
            task_id = resp.json()["id"]

            # Same family but a different parent.
            resp = await client.put(
                f"/tasks/{task_id}", headers=_headers("parent_2"), json=_task_body(hours=3)
            )
            assert resp.status_code == 403
            resp = await client.delete(f"/tasks/{task_id}", headers=_headers("parent_3"))
            assert resp.status_code == 403

            resp = await client.put(
                "/tasks/does-not-exist", headers=_headers("parent_1"), json=_task_body()
            )
            assert resp.status_code == 404

            resp = await client.put(
                f"/tasks/{task_id}", headers=_headers("parent_1"), json=_task_body(hours=0.3)
            )
            assert resp.status_code == 400

            resp = await client.put(
                f"/tasks/{task_id}",
                headers=_headers("parent_1"),
                json=_task_body(hours=3.75, description=" Book fair "),
            )
            assert resp.status_code == 200
            assert resp.json()["hours"] == 3.75
            assert resp.json()["description"] == "Book fair"

            async with TestSession() as session:
                status_row = (
                    await session.execute(
                        select(FamilyYearStatus).where(
                            FamilyYearStatus.family_id == ids["family"]
                        )
                    )
                ).scalar_one()
                assert status_row.total_hours == Decimal("3.75")

            resp = await client.delete(f"/tasks/{task_id}", headers=_headers("parent_1"))
            assert resp.status_code == 204
            resp = await client.delete(f"/tasks/{task_id}", headers=_headers("parent_1"))
            assert resp.status_code == 404

        async with TestSession() as session:
            assert (await session.execute(select(Task))).scalars().all() == []
            status_row = (await session.execute(select(FamilyYearStatus))).scalar_one()
            assert status_row.total_hours == 0

    asyncio.run(run())


def test_task_hours_must_fit_the_hours_column():
    async def run():
        TestSession, _ = await _setup_test_db()
        transport = ASGITransport(app=app)
        headers = _headers("parent_1")
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/tasks", headers=headers, json=_task_body(hours=1e28))
            assert resp.status_code == 400
            assert resp.json()["detail"]["field"] == "hours"

            resp = await client.post("/tasks", headers=headers, json=_task_body(hours=10000))
            assert resp.status_code == 400
            assert resp.json()["detail"]["field"] == "hours"

            resp = await client.post(
                "/tasks", headers=headers, json=_task_body(hours=9999.75)
            )
            assert resp.status_code == 201
            assert resp.json()["hours"] == 9999.75

        async with TestSession() as session:
            tasks = (await session.execute(select(Task))).scalars().all()
            assert [t.hours for t in tasks] == [Decimal("9999.75")]

    asyncio.run(run())
