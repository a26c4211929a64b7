"""
Database engine, session factory and declarative base.

One engine per process, built from ``settings.DATABASE_URL``. PostgreSQL
(asyncpg) is the deployment target; SQLite (aiosqlite) is used by the test
suite. On SQLite the driver's own transaction handling is replaced so
savepoints work, writers are serialized with ``BEGIN IMMEDIATE`` and
foreign keys are switched on so ``ondelete`` rules behave as on PostgreSQL.
"""
from typing import Any, AsyncGenerator, Callable

from sqlalchemy import MetaData, event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from app.core.config import settings

# Naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}


class Base(DeclarativeBase):
    """Base class for all database models."""
    metadata = MetaData(naming_convention=convention)


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # SQLAlchemy emits BEGIN itself (see _begin_sqlite_transaction)
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def _begin_sqlite_transaction(conn) -> None:
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **options: Any) -> AsyncEngine:
    """Create an async engine with per-backend connection setup."""
    if make_url(url).get_backend_name() == "sqlite":
        new_engine = create_async_engine(url, **options)
        event.listen(new_engine.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(new_engine.sync_engine, "begin", _begin_sqlite_transaction)
        return new_engine
    options.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **options)


engine = build_engine(settings.DATABASE_URL)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


ROLLBACK_CALLBACKS_KEY = "rollback_callbacks"


def on_rollback(session: AsyncSession, callback: Callable[[], None]) -> None:
    """Run ``callback`` if the request transaction rolls back (e.g. remove a written file)."""
    session.info.setdefault(ROLLBACK_CALLBACKS_KEY, []).append(callback)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Everything a request writes commits together when the handler returns
    and rolls back together when it raises. Callbacks registered with
    ``on_rollback`` run after a rollback and are dropped after a commit.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
            session.info.pop(ROLLBACK_CALLBACKS_KEY, None)
        except Exception:
            await session.rollback()
            for callback in session.info.pop(ROLLBACK_CALLBACKS_KEY, []):
                callback()
            raise


async def init_db() -> None:
    """Create any missing tables for the registered models."""
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
