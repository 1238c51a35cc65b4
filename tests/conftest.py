"""Test fixtures — a fresh database per test and an HTTP client over ASGI.

Learn: Each test gets its own engine and schema. By default that is an
in-memory SQLite database (aiosqlite) shared through a StaticPool so every
session in the test sees the same data; point MATRIXSTORE_TEST_DATABASE_URL
at a PostgreSQL database to run the same tests there.

The app is built with create_app(database=...) so the routes use the test
store handle. httpx's ASGITransport does not run the lifespan, so Redis is
never initialized and rate limiting is skipped.
"""

import os

# Must be set before matrixstore.config is imported
os.environ.setdefault("MATRIXSTORE_ENVIRONMENT", "test")
os.environ.setdefault("MATRIXSTORE_BCRYPT_ROUNDS", "4")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from matrixstore.db.engine import Database  # noqa: E402
from matrixstore.db.models import Base  # noqa: E402
from matrixstore.main import create_app  # noqa: E402

TEST_DB_URL = os.environ.get("MATRIXSTORE_TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest_asyncio.fixture()
async def database():
    """Per-test store handle with a freshly created schema."""
    kwargs: dict = {"echo": False}
    if TEST_DB_URL.startswith("sqlite"):
        kwargs.update(
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    engine = create_async_engine(TEST_DB_URL, **kwargs)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    db = Database(engine, shutdown_grace_seconds=1.0)
    try:
        yield db
    finally:
        await db.close()


@pytest_asyncio.fixture()
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture()
async def client(database):
    """HTTP client talking to an app wired to the test database."""
    app = create_app(database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def signup_and_login(client, email: str, password: str = "pw") -> dict:
    """Create an account, log in, and return Authorization headers."""
    r = await client.post("/api/create-account", json={"email": email, "password": password})
    assert r.status_code == 201, r.text
    r = await client.post("/api/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest_asyncio.fixture()
async def auth_headers(client):
    return await signup_and_login(client, "a@x.com")


@pytest_asyncio.fixture()
async def signup(client):
    """Factory fixture: `headers = await signup("b@x.com")`."""

    async def _signup(email: str, password: str = "pw") -> dict:
        return await signup_and_login(client, email, password)

    return _signup


@pytest_asyncio.fixture()
async def drop_table(database):
    """Factory fixture: `await drop_table("users")` breaks the store mid-test."""

    async def _drop(table: str) -> None:
        cascade = " CASCADE" if database.engine.dialect.name == "postgresql" else ""
        async with database.engine.begin() as conn:
            await conn.execute(text(f"DROP TABLE {table}{cascade}"))

    return _drop


@pytest_asyncio.fixture()
async def pooled_database(tmp_path):
    """Store handle with a real connection pool, for concurrent sessions.

    The in-memory StaticPool shares one connection, so concurrency tests use
    a file-backed SQLite database instead (or the PostgreSQL test database).
    """
    if TEST_DB_URL.startswith("sqlite"):
        url = f"sqlite+aiosqlite:///{tmp_path / 'matrixstore.db'}"
        engine = create_async_engine(url, connect_args={"timeout": 30})
    else:
        engine = create_async_engine(TEST_DB_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    db = Database(engine, shutdown_grace_seconds=1.0)
    try:
        yield db
    finally:
        await db.close()
