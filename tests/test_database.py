"""Store handle lifecycle — session checkout, release, graceful shutdown."""

import asyncio

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from matrixstore.db.engine import Database


def _memory_db(grace: float = 1.0) -> Database:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    return Database(engine, shutdown_grace_seconds=grace)


@pytest.mark.asyncio
async def test_session_released_on_success():
    db = _memory_db()
    async with db.session() as s:
        assert db.in_flight == 1
        await s.execute(text("SELECT 1"))
    assert db.in_flight == 0
    await db.close()


@pytest.mark.asyncio
async def test_session_released_on_error():
    db = _memory_db()
    with pytest.raises(ZeroDivisionError):
        async with db.session():
            1 / 0
    assert db.in_flight == 0
    await db.close()


@pytest.mark.asyncio
async def test_close_waits_for_in_flight_sessions():
    db = _memory_db(grace=5.0)
    release = asyncio.Event()
    finished = []

    async def request():
        async with db.session() as s:
            await s.execute(text("SELECT 1"))
            await release.wait()
        finished.append(True)

    task = asyncio.create_task(request())
    await asyncio.sleep(0.01)
    assert db.in_flight == 1

    closer = asyncio.create_task(db.close())
    await asyncio.sleep(0.01)
    assert not closer.done()

    release.set()
    await asyncio.wait_for(closer, timeout=2)
    await task
    assert finished == [True]


@pytest.mark.asyncio
async def test_close_gives_up_after_grace_period():
    db = _memory_db(grace=0.05)
    release = asyncio.Event()

    async def stuck_request():
        async with db.session():
            await release.wait()

    task = asyncio.create_task(stuck_request())
    await asyncio.sleep(0.01)

    await asyncio.wait_for(db.close(), timeout=2)

    release.set()
    await task


@pytest.mark.asyncio
async def test_no_new_sessions_while_closing():
    db = _memory_db()
    await db.close()
    with pytest.raises(RuntimeError):
        async with db.session():
            pass


@pytest.mark.asyncio
async def test_startup_rejects_counter_strategy_on_unsupported_dialect(monkeypatch):
    from matrixstore.main import create_app, lifespan

    db = _memory_db()
    monkeypatch.setattr(db.engine.dialect, "name", "mysql")
    monkeypatch.setattr("matrixstore.main.settings.matrix_id_strategy", "counter")
    app = create_app(database=db)

    with pytest.raises(ValueError, match="max_plus_one"):
        async with lifespan(app):
            pass
    await db.close()
