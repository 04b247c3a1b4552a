import pytest
from sqlalchemy import text

from app.database import commit_session, get_db, get_session_factory, init_db, on_commit
from shared.database.postgres import get_async_engine


def test_sqlite_engine_skips_server_pool_options() -> None:
    engine = get_async_engine("sqlite+aiosqlite://")
    assert engine.dialect.name == "sqlite"


@pytest.mark.asyncio
async def test_get_db_yields_working_session() -> None:
    init_db("sqlite+aiosqlite://")
    sessions = get_db()
    session = await anext(sessions)
    assert (await session.execute(text("SELECT 1"))).scalar_one() == 1
    with pytest.raises(StopAsyncIteration):
        await anext(sessions)


@pytest.mark.asyncio
async def test_commit_session_runs_callbacks_once() -> None:
    init_db("sqlite+aiosqlite://")
    ran: list[str] = []

    async def _callback() -> None:
        ran.append("forget")

    async with get_session_factory()() as session:
        on_commit(session, _callback)
        assert ran == []
        await commit_session(session)
        assert ran == ["forget"]
        await commit_session(session)
        assert ran == ["forget"]


@pytest.mark.asyncio
async def test_get_db_drops_callbacks_on_error() -> None:
    init_db("sqlite+aiosqlite://")
    ran: list[str] = []

    async def _callback() -> None:
        ran.append("forget")

    sessions = get_db()
    session = await anext(sessions)
    on_commit(session, _callback)
    with pytest.raises(RuntimeError):
        await sessions.athrow(RuntimeError("handler failed"))
    assert ran == []
    assert "after_commit" not in session.info
