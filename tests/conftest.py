"""
Test fixtures for the User API test suite.

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client with a pre-created user and JWT
  - second_client: A separate client authenticated as a second user
  - alice / bob: The ids of the users behind those two clients

Each test gets a completely fresh database. FastAPI's get_db dependency is
overridden so requests hit the in-memory database. Users are created
through the real endpoints, so the fixtures exercise create and
authentication themselves.
"""

import os

# Settings are read at import time; SECRET_KEY has no default
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from user_api.database import Base, get_db
from user_api.main import app


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

ALICE = {"username": "alice", "password": "secret"}
BOB = {"username": "bob", "password": "hunter22"}


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


def _override_get_db(db_engine):
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return override_get_db


@pytest_asyncio.fixture
async def client(db_engine):
    """Async HTTP test client with the test database injected."""
    app.dependency_overrides[get_db] = _override_get_db(db_engine)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def second_client(client):
    """
    A second, independent HTTP client on the same app and database.

    Kept separate from `client` so each can carry its own Authorization header.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def _sign_up(client: AsyncClient, credentials: dict) -> str:
    """Create a user, log in, set the bearer header; return the user id."""
    response = await client.post("/users", json=credentials)
    assert response.status_code == 201, f"Create failed: {response.text}"

    response = await client.post(
        "/authentication", json={"strategy": "local", **credentials}
    )
    assert response.status_code == 201, f"Login failed: {response.text}"
    client.headers["Authorization"] = f"Bearer {response.json()['accessToken']}"
    return response.json()["user"]["_id"]


@pytest_asyncio.fixture
async def alice(client):
    """Id of "alice"; `client` is authenticated as her afterwards."""
    return await _sign_up(client, ALICE)


@pytest_asyncio.fixture
async def authenticated_client(client, alice):
    return client


@pytest_asyncio.fixture
async def bob(second_client):
    """Id of "bob"; `second_client` is authenticated as him afterwards."""
    return await _sign_up(second_client, BOB)
