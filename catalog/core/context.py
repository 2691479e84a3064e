"""Explicit runtime context.

One CatalogContext is built at process start (FastAPI lifespan, scripts)
and handed to every component. Tests build their own with in-memory
backends instead of patching globals.
"""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from catalog.config import Settings
from catalog.infra.cache import Cache, MemoryCache, RedisCache
from catalog.infra.database import create_engine, create_session_factory, session_scope
from catalog.infra.events import EventBus, MemoryEventBus, RedisEventBus
from catalog.infra.logging import get_logger

if TYPE_CHECKING:
    from catalog.repositories import Repositories

logger = get_logger(__name__)


@dataclass
class CatalogContext:
    """Shared handles for one process.

    Attributes:
        settings: Application settings
        session_factory: Async session factory for the catalog database
        cache: View cache backend
        events: Change-event publisher
        engine: Engine behind session_factory, disposed on close()
    """

    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    cache: Cache
    events: EventBus
    engine: AsyncEngine | None = None
    _repositories: "Repositories | None" = field(default=None, init=False, repr=False)

    @classmethod
    def create(cls, settings: Settings) -> "CatalogContext":
        """Build a context from settings.

        Uses Redis for cache and events unless use_memory_cache is set.
        """
        engine = create_engine(settings)
        cache: Cache
        events: EventBus
        if settings.use_memory_cache:
            cache = MemoryCache(prefix=settings.cache_key_prefix, ttl_seconds=settings.cache_ttl_seconds)
            events = MemoryEventBus()
        else:
            cache = RedisCache.from_url(
                settings.redis_url,
                prefix=settings.cache_key_prefix,
                ttl_seconds=settings.cache_ttl_seconds,
            )
            events = RedisEventBus.from_url(settings.redis_url)

        logger.info(
            "Catalog context created",
            environment=settings.environment,
            cache=type(cache).__name__,
            events=type(events).__name__,
        )
        return cls(
            settings=settings,
            session_factory=create_session_factory(engine),
            cache=cache,
            events=events,
            engine=engine,
        )

    def session(self) -> AbstractAsyncContextManager[AsyncSession]:
        """Session that commits on success and rolls back on error."""
        return session_scope(self.session_factory)

    @property
    def repositories(self) -> "Repositories":
        """Repository registry, built on first use."""
        if self._repositories is None:
            from catalog.repositories import Repositories

            self._repositories = Repositories(self)
        return self._repositories

    async def close(self) -> None:
        """Release cache, event bus and database connections."""
        await self.cache.close()
        await self.events.close()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("Catalog context closed")
