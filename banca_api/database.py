"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - engine: The async database engine (connection pool for production DBs)
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

Unit of work:
  Each API request gets its own session via get_db(). Every write made by a
  banking operation (both balance updates and both ledger records of a
  transfer, for example) goes through that one session and is committed once
  when the request succeeds. Any exception rolls the whole request back, so a
  transfer can never be left with only one side applied.

Write serialization:
  Balance changes are read-modify-write. On PostgreSQL the services lock the
  account rows with SELECT ... FOR UPDATE. SQLite ignores FOR UPDATE, and the
  driver only opens a transaction at the first write, so two sessions could
  read the same balance. On SQLite every transaction is therefore started
  with BEGIN IMMEDIATE, which takes the database write lock up front; a
  second session waits (up to the driver's busy timeout) until the first
  commits, then reads the committed balance.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from banca_api.config import settings


def enable_sqlite_write_locking(async_engine: AsyncEngine) -> None:
    """
    Start every transaction on a SQLite engine with BEGIN IMMEDIATE.

    This is SQLAlchemy's documented recipe for taking over transaction
    control from the sqlite3 driver: the driver's own implicit BEGIN is
    disabled and the "begin" event emits ours instead.
    """

    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# echo=True in debug mode logs all SQL statements.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

if engine.dialect.name == "sqlite":
    enable_sqlite_write_locking(engine)

# expire_on_commit=False prevents lazy-load errors after commit: without it,
# reading attributes on a committed object would trigger a synchronous DB call,
# which fails in async context.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any exception,
    then closed when the request completes. Rejected operations (insufficient
    funds, inactive accounts) write nothing, so a rollback is always safe.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
