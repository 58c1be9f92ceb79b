"""
Shared fixtures: in-memory SQLite database, in-memory Redis double, HTTP client
and helpers for registering users and building the context/project hierarchy.
"""

from __future__ import annotations

import os

os.environ.setdefault("NP_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("NP_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("NP_BCRYPT_ROUNDS", "4")
os.environ.setdefault("NP_LOG_FORMAT", "console")

import uuid
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core import redis as redis_module
from app.core.database import get_session
from app.main import app as fastapi_app

PASSWORD = "Passw0rd!"


class FakeRedis:
    """The subset of redis.asyncio.Redis the server uses, held in a dict."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def getdel(self, key: str) -> Optional[str]:
        self.ttls.pop(key, None)
        return self.store.pop(key, None)

    async def exists(self, *keys: str) -> int:
        return sum(1 for k in keys if k in self.store)

    async def aclose(self) -> None:
        pass


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "_redis_pool", fake)
    return fake


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    """A session for arranging or inspecting rows directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = _get_session
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestUser:
    __test__ = False  # not a test class

    def __init__(self, id: uuid.UUID, email: str, token: str):
        self.id = id
        self.email = email
        self.token = token

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def make_user(client):
    async def _make(name: str = "user", **extra) -> TestUser:
        email = f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
        resp = await client.post(
            "/auth/register",
            json={"email": email, "password": PASSWORD, "full_name": name.title(), **extra},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return TestUser(id=uuid.UUID(data["user"]["id"]), email=email, token=data["token"])

    return _make


@pytest.fixture
def make_context(client):
    async def _make(owner: TestUser, name: str = "Acme") -> dict:
        resp = await client.post(
            "/api/v1/contexts", json={"name": name}, headers=owner.headers
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["context"]

    return _make


@pytest.fixture
def make_project(client):
    async def _make(admin: TestUser, context_id: str, name: str = "Launch", **extra) -> dict:
        resp = await client.post(
            f"/api/v1/contexts/{context_id}/projects",
            json={"name": name, **extra},
            headers=admin.headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["project"]

    return _make


@pytest.fixture
def join(client):
    async def _join(user: TestUser, context: dict) -> None:
        resp = await client.post(
            f"/api/v1/contexts/join/{context['invite_code']}", headers=user.headers
        )
        assert resp.status_code == 200, resp.text

    return _join


@pytest.fixture
def add_to_project(client):
    async def _add(admin: TestUser, project: dict, user: TestUser) -> None:
        resp = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(user.id)},
            headers=admin.headers,
        )
        assert resp.status_code == 201, resp.text

    return _add
