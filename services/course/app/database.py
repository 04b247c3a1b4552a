from collections.abc import AsyncGenerator, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.database.postgres import get_async_session_factory

_session_factory: async_sessionmaker[AsyncSession] | None = None

# session.info key holding callbacks to run once the transaction is durable
_AFTER_COMMIT = "after_commit"


def init_db(database_url: str) -> None:
    global _session_factory
    _session_factory = get_async_session_factory(database_url, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized")
    return _session_factory


def on_commit(session: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """Run ``callback`` after the session's next successful ``commit_session``."""
    session.info.setdefault(_AFTER_COMMIT, []).append(callback)


async def commit_session(session: AsyncSession) -> None:
    await session.commit()
    callbacks = session.info.pop(_AFTER_COMMIT, [])
    for callback in callbacks:
        await callback()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One transaction per request: commit on success, roll back on any error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await commit_session(session)
        except Exception:
            session.info.pop(_AFTER_COMMIT, None)
            await session.rollback()
            raise
