"""Async database configuration.

Provides:
- Async SQLAlchemy engine and session factory built from Settings
- A session scope that commits on success and rolls back on error
- Connectivity check and schema bootstrap helpers

Nothing here is global: the engine and factory live on CatalogContext.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from catalog.config import Settings
from catalog.infra.logging import get_logger

logger = get_logger(__name__)


def create_engine(settings: Settings, **overrides: Any) -> AsyncEngine:
    """Create the async database engine.

    Args:
        settings: Application settings
        **overrides: Extra keyword arguments for create_async_engine
            (tests pass poolclass/connect_args for in-memory SQLite)

    Returns:
        AsyncEngine bound to settings.database_url
    """
    url = settings.database_url
    is_sqlite = url.startswith("sqlite")

    options: dict[str, Any] = {"echo": settings.debug}
    if not is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_pool_max_overflow,
            pool_pre_ping=True,  # Verify connections before use
            pool_recycle=1800,  # Recycle connections after 30 min
        )
    options.update(overrides)

    logger.info(
        "Creating database engine",
        driver=url.split(":", 1)[0],
        pool_size=options.get("pool_size"),
        max_overflow=options.get("max_overflow"),
    )
    engine = create_async_engine(url, **options)

    if is_sqlite:
        # SQLite ignores ON DELETE CASCADE unless enforcement is switched on
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory for an engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session that commits on exit.

    Args:
        factory: Session factory from create_session_factory

    Yields:
        AsyncSession, committed when the block exits cleanly

    Example:
        async with session_scope(ctx.session_factory) as session:
            session.add(Fruit(name_es="Pera", name_en="Pear", category_id=cid))
    """
    session = factory()

    try:
        yield session
        await session.commit()

    except Exception as e:
        await session.rollback()
        logger.error("Database session error", error=str(e), error_type=type(e).__name__)
        raise

    finally:
        await session.close()


async def create_schema(engine: AsyncEngine) -> None:
    """Create all catalog tables that do not exist yet."""
    from catalog.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured", tables=len(Base.metadata.tables))


async def verify_db_connection(factory: async_sessionmaker[AsyncSession]) -> bool:
    """Verify database connectivity.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        async with session_scope(factory) as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.error("Database connection failed", error=str(e))
        return False
