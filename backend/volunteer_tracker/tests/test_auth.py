"""Tests for session verification and first sign-in provisioning."""

import asyncio
import importlib
import pathlib
import sys
from datetime import datetime, timedelta

from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select

# Allow importing the app package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from volunteer_tracker.main import app
from volunteer_tracker.database import get_session
from volunteer_tracker.auth import create_access_token
from volunteer_tracker.models import User
from volunteer_tracker.school_year import SchoolYearCache, SchoolYearResolver


async def _setup_test_db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_session():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.state.school_year_resolver = SchoolYearResolver(SchoolYearCache())
    return TestSession


def test_first_sign_in_provisions_parent_without_family():
    async def run():
        TestSession = await _setup_test_db()
        token = create_access_token(data={"sub": "idp_123", "email": "new@example.com"})
        headers = {"Authorization": f"Bearer {token}"}
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/users/me", headers=headers)
            assert resp.status_code == 200
            data = resp.json()
            assert data["id"] == "idp_123"
            assert data["email"] == "new@example.com"
            assert data["role"] == "parent"
            assert data["family_id"] is None

            # Signing in again reuses the record.
            resp = await client.get("/users/me", headers=headers)
            assert resp.status_code == 200

            # Without a family the parent cannot reach the dashboard.
            resp = await client.get("/dashboard", headers=headers)
            assert resp.status_code == 403

        async with TestSession() as session:
            result = await session.execute(select(User))
            assert len(result.scalars().all()) == 1

    asyncio.run(run())


def test_invalid_sessions_are_rejected():
    async def run():
        await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/users/me")
            assert resp.status_code == 401
            assert resp.json()["detail"]["code"] == "auth_invalid_session"

            resp = await client.get(
                "/users/me", headers={"Authorization": "Bearer not-a-token"}
            )
            assert resp.status_code == 401

            expired = create_access_token(
                data={"sub": "idp_1", "email": "a@example.com"},
                expires_delta=timedelta(minutes=-5),
            )
            resp = await client.get(
                "/users/me", headers={"Authorization": f"Bearer {expired}"}
            )
            assert resp.status_code == 401

            forged = jwt.encode(
                {"sub": "idp_1", "email": "a@example.com"}, "wrong-secret", algorithm="HS256"
            )
            resp = await client.get(
                "/users/me", headers={"Authorization": f"Bearer {forged}"}
            )
            assert resp.status_code == 401

            # Unknown subject with no email claim cannot be provisioned.
            no_email = create_access_token(data={"sub": "idp_2"})
            resp = await client.get(
                "/users/me", headers={"Authorization": f"Bearer {no_email}"}
            )
            assert resp.status_code == 401

    asyncio.run(run())


def test_archived_user_is_forbidden():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            session.add(
                User(id="idp_9", email="gone@example.com", archived_at=datetime.utcnow())
            )
            await session.commit()

        token = create_access_token(data={"sub": "idp_9"})
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get(
                "/users/me", headers={"Authorization": f"Bearer {token}"}
            )
            assert resp.status_code == 403
            assert resp.json()["detail"]["code"] == "auth_account_archived"

    asyncio.run(run())


def test_access_token_expiration_respects_env(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1")
    import volunteer_tracker.auth as auth
    importlib.reload(auth)

    token = auth.create_access_token(data={"sub": "test"})
    decoded = jwt.decode(token, auth.SECRET_KEY, algorithms=[auth.ALGORITHM])
    exp = datetime.utcfromtimestamp(decoded["exp"])
    delta = exp - datetime.utcnow()
    assert 45 <= delta.total_seconds() <= 75

    monkeypatch.delenv("ACCESS_TOKEN_EXPIRE_MINUTES", raising=False)
    importlib.reload(auth)


def test_first_sign_in_with_taken_email_is_rejected():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            session.add(User(id="parent_1", email="p1@example.com"))
            await session.commit()

        token = create_access_token(data={"sub": "idp_other", "email": "P1@example.com"})
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get(
                "/users/me", headers={"Authorization": f"Bearer {token}"}
            )
            assert resp.status_code == 409
            assert resp.json()["detail"]["code"] == "conflict"

        async with TestSession() as session:
            result = await session.execute(select(User.id))
            assert result.scalars().all() == ["parent_1"]

    asyncio.run(run())
