"""Shared fixtures.

Every test gets its own in-memory SQLite catalog (aiosqlite + StaticPool so
all sessions share one connection), an in-process cache and an event bus
that records what was published.
"""

from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from catalog.config import Settings
from catalog.core.context import CatalogContext
from catalog.infra.cache import MemoryCache
from catalog.infra.database import create_engine, create_schema, create_session_factory
from catalog.infra.events import MemoryEventBus
from catalog.sources import SheetLayout, catalog_layouts


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="dev",
        database_url_override="sqlite+aiosqlite:///:memory:",
        use_memory_cache=True,
        log_json=False,
        default_page_size=20,
        catalog_spreadsheet_id="catalog-sheet",
        prices_spreadsheet_id="prices-sheet",
        harvest_spreadsheet_id="harvest-sheet",
    )


@pytest_asyncio.fixture
async def ctx(settings: Settings) -> AsyncGenerator[CatalogContext, None]:
    """Catalog context over a fresh in-memory database."""
    engine = create_engine(
        settings,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    context = CatalogContext(
        settings=settings,
        session_factory=create_session_factory(engine),
        cache=MemoryCache(),
        events=MemoryEventBus(),
        engine=engine,
    )
    yield context
    await context.close()


@pytest.fixture
def cache(ctx: CatalogContext) -> MemoryCache:
    return ctx.cache  # type: ignore[return-value]


@pytest.fixture
def events(ctx: CatalogContext) -> MemoryEventBus:
    return ctx.events  # type: ignore[return-value]


@pytest_asyncio.fixture
async def client(ctx: CatalogContext) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test context installed."""
    from catalog.main import app

    app.state.catalog = ctx
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.state.catalog = None


class CatalogSeed:
    """Builds parent records through the repositories."""

    def __init__(self, ctx: CatalogContext) -> None:
        self.repos = ctx.repositories

    async def fruit_category(self, name_en: str = "Citrus", name_es: str = "Cítricos") -> dict[str, Any]:
        return await self.repos.fruit_categories.create({"nameEs": name_es, "nameEn": name_en})

    async def presentation_category(
        self, name_en: str = "Frozen", name_es: str = "Congelado"
    ) -> dict[str, Any]:
        return await self.repos.presentation_categories.create({"nameEs": name_es, "nameEn": name_en})

    async def country(self, name_en: str = "Mexico", name_es: str = "México") -> dict[str, Any]:
        return await self.repos.countries.create({"nameEs": name_es, "nameEn": name_en, "dialCode": "+52"})

    async def fruit(self, name_en: str = "Lime", name_es: str = "Limón", category: str | None = None) -> dict[str, Any]:
        if category is None:
            category = (await self.fruit_category())["id"]
        return await self.repos.fruits.create({"nameEs": name_es, "nameEn": name_en, "category": category})

    async def variety(
        self, fruit: str, name_en: str = "Persian", name_es: str = "Persa", **extra: Any
    ) -> dict[str, Any]:
        return await self.repos.fruit_varieties.create(
            {"nameEs": name_es, "nameEn": name_en, "fruit": fruit, **extra}
        )

    async def presentation(
        self, name_en: str = "Juice", name_es: str = "Jugo", category: str | None = None, **extra: Any
    ) -> dict[str, Any]:
        if category is None:
            category = (await self.presentation_category())["id"]
        return await self.repos.presentations.create(
            {"nameEs": name_es, "nameEn": name_en, "category": category, **extra}
        )

    async def product(self, variety: str, presentation: str, **extra: Any) -> dict[str, Any]:
        return await self.repos.products.create(
            {"fruitVariety": variety, "presentation": presentation, **extra}
        )


@pytest.fixture
def seed(ctx: CatalogContext) -> CatalogSeed:
    return CatalogSeed(ctx)


def sheet_row(layout: SheetLayout, **values: Any) -> dict[str, Any]:
    """Spreadsheet row for StaticSource, given by layout field name."""
    return {layout.columns[name]: value for name, value in values.items()}


@pytest.fixture
def layouts(settings: Settings) -> dict[str, SheetLayout]:
    return catalog_layouts(settings)
