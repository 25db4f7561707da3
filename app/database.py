"""Database Connection and Session Management"""

from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app.config import settings

# Convert postgresql:// to postgresql+asyncpg:// for async support
database_url = settings.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")


def configure_sqlite_engine(engine: AsyncEngine, busy_timeout: int = None) -> None:
    """
    Let SQLAlchemy own BEGIN on SQLite connections and enforce foreign keys.

    The sqlite3 driver defers BEGIN until the first DML statement, which breaks
    SAVEPOINT handling; code allocation relies on savepoints to retry an insert
    after a unique violation without losing the outer transaction.

    Transactions start with ``BEGIN IMMEDIATE`` so each one takes the write lock
    up front. With a plain deferred BEGIN, two sessions allocating in the same
    partition both hold read locks after their lookup and the second writer
    fails with "database is locked" instead of waiting. Waiting is bounded by
    ``busy_timeout`` seconds (default ``SQLITE_BUSY_TIMEOUT``).
    """
    if busy_timeout is None:
        busy_timeout = settings.SQLITE_BUSY_TIMEOUT

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout * 1000)}")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


engine_kwargs = {"echo": settings.DEBUG, "future": True}
if not settings.is_sqlite:
    # pool_pre_ping detects stale connections dropped by the server
    engine_kwargs.update(
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )

engine = create_async_engine(database_url, **engine_kwargs)
if settings.is_sqlite:
    configure_sqlite_engine(engine)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Base class for declarative models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session.

    Yields:
        AsyncSession: Database session

    Example:
        ```python
        @router.get("/students")
        async def list_students(db: AsyncSession = Depends(get_db)):
            ...
        ```
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Initialize database tables (for development only)"""
    import app.models  # noqa: F401  register tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
