'''
Database Engine file.
1- Engine: creates and manages the connection pool
2- AsyncSessionLocal: Session Creator (with engine as bind)
3- get_db_session: Dependency to create, yield and manage the life-cycle of a session.
'''
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from typing import AsyncGenerator, Any
from ..common.config import settings
from ..common.logger import log
from .models import Base

# We define them as None. They will be created by the app's lifespan.
engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str) -> dict[str, Any]:
    """SQLite has no server-side pool; PostgreSQL gets the tuned TCP pool."""
    if url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            # every session must see the same in-memory database
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": -1,
        "pool_pre_ping": True,
    }


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def create_db_engine_and_session_factory():
    """
    Creates the engine and session factory.
    This is called by the app's lifespan event.
    """
    global engine, AsyncSessionLocal

    log.info("Creating database engine...")
    try:
        engine = create_async_engine(
            settings.database_url,
            echo=False,
            **_engine_options(settings.database_url)
        )
        AsyncSessionLocal = build_session_factory(engine)
        log.info("Async database engine and session factory created successfully.")
    except Exception as e:
        log.critical(f"Failed to create async database engine: {e}", exc_info=True)
        raise


async def create_tables(bind: AsyncEngine | None = None):
    """Creates any missing tables. Used for local development and tests."""
    target = bind or engine
    if target is None:
        raise RuntimeError("Database engine is not available.")
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Database tables are in place.")


async def dispose_db_engine():
    """Disposes of the engine. Called by the app's lifespan."""
    global engine, AsyncSessionLocal
    if engine:
        await engine.dispose()
        log.info("Database engine disposed.")
    engine = None
    AsyncSessionLocal = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    1. A session is created from the factory for each request.
    2. The session is yielded to the route.
    3. The session is committed if the request is successful.
    4. The session is rolled back if an exception occurs.
    5. The session is always closed after the request.
    """
    if AsyncSessionLocal is None:
        log.error("AsyncSessionLocal is not initialized. App lifespan may not have run.")
        raise RuntimeError("Database session factory is not available.")

    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        log.error(f"Database session rolled back due to error: {e}")
        raise
    finally:
        await session.close()
