# ABOUTME: Database engine and async session factory.
# ABOUTME: Manages SQLAlchemy async engine lifecycle, SQLite pragmas and table creation.

import structlog
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from termfeed.config import get_settings
from termfeed.db.models import Base

log = structlog.get_logger()

_engine = None
_session_factory = None


def _enable_sqlite_pragmas(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine with foreign keys enforced on every connection."""
    engine = create_async_engine(url, echo=False)
    event.listen(engine.sync_engine, "connect", _enable_sqlite_pragmas)
    return engine


def get_engine() -> AsyncEngine:
    """Get or create the async engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        settings.db_path.parent.mkdir(parents=True, exist_ok=True)
        _engine = build_engine(settings.database_url)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Sessions on the termfeed database.

    Loaded attributes survive commit, so services build views after the
    transaction closes.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def init_db() -> None:
    """Create the feeds, articles and pins tables if missing."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info(
        "database_ready",
        path=str(get_settings().db_path),
        tables=sorted(Base.metadata.tables),
    )


async def close_db() -> None:
    """Dispose of the engine; the next call builds a new one."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = _session_factory = None
    log.info("database_closed", path=str(get_settings().db_path))
