"""End-to-end sync of every entity from an in-memory spreadsheet."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from catalog.core.context import CatalogContext
from catalog.core.errors import ValidationError
from catalog.sources import SheetLayout, SourceSnapshot, StaticSource
from catalog.sync import SYNC_ORDER, Reconciler, sync_catalog
from catalog.sync.handlers import FruitVarietyHandler
from catalog.sync.service import select_entities
from conftest import CatalogSeed, sheet_row


def counts(outcomes) -> dict[str, dict[str, int]]:
    return {o.entity: o.result.to_dict() for o in outcomes}


def price_row(layout: SheetLayout, fruit: str, country: str, price: object) -> dict:
    return sheet_row(layout, fruit=fruit, presentation="Juice", date=45292, country=country, price=price)


@pytest.fixture
def source(layouts: dict[str, SheetLayout]) -> StaticSource:
    fruits = layouts["fruits"]
    presentations = layouts["presentations"]
    products = layouts["products"]
    prices = layouts["prices"]
    harvests = layouts["harvests"]
    return StaticSource(
        {
            "Datos": [
                {"A": "Cítricos", "B": "Citrus", "C": "Congelado", "D": "Frozen"},
                {"A": "Tropicales", "B": "Tropical"},
            ],
            "Fruta": [
                sheet_row(
                    fruits,
                    id="1",
                    nameEn="Lime",
                    nameEs="Limón",
                    category="Citrus",
                    descriptionEn="Sour",
                    picture="https://drive.google.com/file/d/lime123/view",
                ),
                sheet_row(
                    fruits,
                    id="2",
                    nameEn="Lime",
                    nameEs="Limón",
                    category="Citrus",
                    varietyEn="Persian",
                    varietyEs="Persa",
                    descriptionEn="Seedless",
                ),
                sheet_row(fruits, id="3", nameEn="Mango", nameEs="Mango", category="Tropical"),
            ],
            "Presentacion": [
                sheet_row(presentations, id="P1", nameEn="Juice", nameEs="Jugo", category="Frozen"),
                sheet_row(presentations, id="P2", nameEn="Puree", category="Frozen"),
            ],
            "Producto": [
                sheet_row(
                    products,
                    id="10",
                    fruit="Lime",
                    fruitVarietyEn="Persian",
                    presentation="Juice",
                    specNameEn="Spec sheet",
                    specUrlEn="https://example.com/spec.pdf",
                ),
                sheet_row(
                    products,
                    id="11",
                    fruit="Mango",
                    fruitVarietyEn="Ataulfo",
                    fruitVarietyEs="Ataúlfo",
                    presentation="Puree",
                ),
                sheet_row(products, id="12", fruit="Kiwi", presentation="Juice"),
                sheet_row(products, id="13", fruit="Lime", presentation="Juice"),
            ],
            "Available": [
                sheet_row(
                    prices,
                    fruit="Lime Persian",
                    presentation="Juice",
                    date=45292,
                    country="Mexico",
                    price=12.5,
                    drums=4.0,
                    organic="Organic",
                ),
                price_row(prices, "Lime", "Mexico", 10),
                price_row(prices, "Lime Persian", "Peru", 3),
                price_row(prices, "Lime Persian", "Mexico", ""),
            ],
            "Fruit Summary": [
                sheet_row(
                    harvests,
                    country="Mexico",
                    fruit="Lime",
                    variety="Persian /Tahiti",
                    organic=1,
                    month_5=1,
                    month_6=1,
                ),
                sheet_row(harvests, country="Mexico", fruit="Mango", variety="Kent", month_1=1),
            ],
        }
    )


@pytest_asyncio.fixture
async def mexico(seed: CatalogSeed) -> dict:
    return await seed.country()


class TestFullSync:
    """Tests for a complete sync in dependency order."""

    @pytest.mark.asyncio
    async def test_first_sync_counts(self, ctx: CatalogContext, source: StaticSource, mexico: dict):
        outcomes = await sync_catalog(ctx, source=source)

        assert [o.entity for o in outcomes] == list(SYNC_ORDER)
        assert all(o.ok for o in outcomes)
        assert counts(outcomes) == {
            "fruit_categories": {"added": 2, "updated": 0, "deleted": 0, "skipped": 0},
            "presentation_categories": {"added": 1, "updated": 0, "deleted": 0, "skipped": 1},
            "fruits": {"added": 2, "updated": 0, "deleted": 0, "skipped": 0},
            "fruit_varieties": {"added": 3, "updated": 0, "deleted": 0, "skipped": 0},
            "presentations": {"added": 2, "updated": 0, "deleted": 0, "skipped": 0},
            "products": {"added": 3, "updated": 0, "deleted": 0, "skipped": 1},
            "prices": {"added": 2, "updated": 0, "deleted": 0, "skipped": 2},
            "harvests": {"added": 3, "updated": 0, "deleted": 0, "skipped": 0},
        }

    @pytest.mark.asyncio
    async def test_second_sync_is_idempotent(self, ctx: CatalogContext, source: StaticSource, mexico: dict):
        await sync_catalog(ctx, source=source)

        outcomes = await sync_catalog(ctx, source=source)

        for outcome in outcomes:
            assert outcome.result.added == 0, outcome.entity
            assert outcome.result.deleted == 0, outcome.entity
        assert counts(outcomes)["fruit_varieties"]["updated"] == 3
        assert counts(outcomes)["prices"]["updated"] == 2
        assert await ctx.repositories.fruit_varieties.count() == 5

    @pytest.mark.asyncio
    async def test_fruit_and_variety_rows(self, ctx: CatalogContext, source: StaticSource, mexico: dict):
        await sync_catalog(ctx, source=source)
        repos = ctx.repositories

        lime = await repos.fruits.get_by_name("Lime")
        assert lime["description"] == "Sour"
        assert lime["picture"] == "https://drive.google.com/uc?export=view&id=lime123"
        assert lime["category"]["name"] == "Citrus"

        plain = await repos.fruit_varieties.get_by_id("1", "es")
        assert plain["name"] == "Limón"
        assert plain["fullName"] == "Limón"
        persian = await repos.fruit_varieties.get_by_id("2")
        assert persian["fullName"] == "Lime Persian"
        assert persian["description"] == "Seedless"

    @pytest.mark.asyncio
    async def test_presentation_name_falls_back_to_english(
        self, ctx: CatalogContext, source: StaticSource, mexico: dict
    ):
        await sync_catalog(ctx, source=source)

        puree = await ctx.repositories.presentations.get_by_id("P2", "es")
        assert puree["name"] == "Puree"

    @pytest.mark.asyncio
    async def test_products_and_documents(self, ctx: CatalogContext, source: StaticSource, mexico: dict):
        await sync_catalog(ctx, source=source)
        repos = ctx.repositories

        product = await repos.products.get_by_id("10")
        assert product["fruitVariety"]["id"] == "2"
        assert product["presentation"]["id"] == "P1"
        assert [doc["name"] for doc in product["documents"]] == ["Spec sheet"]
        assert await repos.products.get_by_id("12") is None

        plain = await repos.products.get_by_id("13")
        assert plain["fruitVariety"]["id"] == "1"

        await sync_catalog(ctx, entities=["products"], source=source)
        assert await repos.product_documents.count({"product": "10"}) == 1

    @pytest.mark.asyncio
    async def test_inline_variety_for_product(self, ctx: CatalogContext, source: StaticSource, mexico: dict):
        await sync_catalog(ctx, source=source)

        product = await ctx.repositories.products.get_by_id("11", "es")
        variety = product["fruitVariety"]
        assert len(variety["id"]) == 10
        assert variety["fullName"] == "Mango Ataúlfo"

    @pytest.mark.asyncio
    async def test_sheet_variety_replaces_inline_twin(
        self, ctx: CatalogContext, source: StaticSource, layouts: dict, mexico: dict
    ):
        await sync_catalog(ctx, source=source)
        fruta = source._sheets["Fruta"] + [
            sheet_row(
                layouts["fruits"],
                id="4",
                nameEn="Mango",
                nameEs="Mango",
                category="Tropical",
                varietyEn="Ataulfo",
                varietyEs="Ataúlfo",
            )
        ]
        source.set("Fruta", fruta)

        outcomes = await sync_catalog(ctx, entities=["fruit_varieties", "products"], source=source)

        assert counts(outcomes)["fruit_varieties"]["added"] == 1
        mango = await ctx.repositories.fruits.get_by_name("Mango")
        ataulfo = await ctx.repositories.fruit_varieties.get_by_name("Ataulfo", mango["id"])
        assert ataulfo["id"] == "4"
        assert (await ctx.repositories.products.get_by_id("11"))["fruitVariety"]["id"] == "4"

    @pytest.mark.asyncio
    async def test_prices(self, ctx: CatalogContext, source: StaticSource, mexico: dict):
        await sync_catalog(ctx, source=source)

        price = await ctx.repositories.prices.get_one("10", mexico["id"], "2024-01-01")
        assert Decimal(price["price"]) == Decimal("12.5")
        assert price["drums"] == 4
        assert price["organic"] is True
        plain = await ctx.repositories.prices.get_one("13", mexico["id"], "2024-01-01")
        assert plain["organic"] is False

    @pytest.mark.asyncio
    async def test_price_change_updates_in_place(
        self, ctx: CatalogContext, source: StaticSource, layouts: dict, mexico: dict
    ):
        await sync_catalog(ctx, source=source)
        source.set(
            "Available",
            [price_row(layouts["prices"], "Lime", "Mexico", 11)],
        )

        outcomes = await sync_catalog(ctx, entities=["prices"], source=source)

        assert counts(outcomes)["prices"] == {"added": 0, "updated": 1, "deleted": 0, "skipped": 0}
        assert await ctx.repositories.prices.count() == 2
        price = await ctx.repositories.prices.get_one("13", mexico["id"], "2024-01-01")
        assert Decimal(price["price"]) == Decimal("11")

    @pytest.mark.asyncio
    async def test_harvests(self, ctx: CatalogContext, source: StaticSource, mexico: dict):
        await sync_catalog(ctx, source=source)
        harvests = ctx.repositories.harvests

        persian = await harvests.list({"fruitVariety": "2"})
        assert [h["month"] for h in persian] == [5, 6]
        assert all(h["organic"] for h in persian)

        mango = await ctx.repositories.fruits.get_by_name("Mango")
        kent = await ctx.repositories.fruit_varieties.get_by_name("Kent", mango["id"])
        assert kent is not None
        assert await harvests.count({"fruitVariety": kent["id"], "month": 1}) == 1

    @pytest.mark.asyncio
    async def test_unknown_category_stops_the_sync(
        self, ctx: CatalogContext, source: StaticSource, layouts: dict, mexico: dict
    ):
        source.set(
            "Fruta",
            [sheet_row(layouts["fruits"], id="1", nameEn="Kiwi", nameEs="Kiwi", category="Berries")],
        )

        outcomes = await sync_catalog(ctx, source=source)

        assert [o.entity for o in outcomes] == ["fruit_categories", "presentation_categories", "fruits"]
        assert outcomes[-1].error.code == "SYNC_UNRESOLVED_REFERENCE"
        assert outcomes[-1].checkpoint is None


class TestVarietySheet:
    """Variety rows converged on their own against existing fruits."""

    @pytest_asyncio.fixture
    async def lime(self, seed: CatalogSeed) -> dict:
        return await seed.fruit()

    @pytest.fixture
    def varieties(self) -> StaticSource:
        return StaticSource()

    def reconciler(self, ctx: CatalogContext, layouts: dict, source: StaticSource) -> Reconciler:
        return Reconciler(FruitVarietyHandler(ctx, layouts["fruit_varieties"]), source)

    def row(self, layouts: dict, **values) -> dict:
        return sheet_row(layouts["fruit_varieties"], **values)

    @pytest.mark.asyncio
    async def test_renumbered_row_replaces_its_twin(
        self, ctx: CatalogContext, seed: CatalogSeed, lime: dict, layouts: dict, varieties: StaticSource
    ):
        await seed.variety(lime["id"], id="11")
        varieties.set("Fruta", [self.row(layouts, id="12", fruit="Lime", nameEn="Persian", nameEs="Persa")])
        reconciler = self.reconciler(ctx, layouts, varieties)

        first = await reconciler.run()

        assert first.ok
        assert first.result.to_dict() == {"added": 1, "updated": 0, "deleted": 1, "skipped": 0}
        repo = ctx.repositories.fruit_varieties
        assert await repo.get_by_id("11") is None
        assert (await repo.get_by_name("Persian", lime["id"]))["id"] == "12"

        second = await reconciler.run()

        assert second.ok
        assert second.result.to_dict() == {"added": 0, "updated": 1, "deleted": 0, "skipped": 0}

    @pytest.mark.asyncio
    async def test_replaced_twin_comes_back_under_its_own_row(
        self, ctx: CatalogContext, seed: CatalogSeed, lime: dict, layouts: dict, varieties: StaticSource
    ):
        await seed.variety(lime["id"], id="11")
        varieties.set(
            "Fruta",
            [
                self.row(layouts, id="12", fruit="Lime", nameEn="Persian", nameEs="Persa"),
                self.row(layouts, id="11", fruit="Lime", nameEn="Bearss", nameEs="Bearss"),
            ],
        )

        outcome = await self.reconciler(ctx, layouts, varieties).run()

        assert outcome.ok
        assert outcome.result.to_dict() == {"added": 2, "updated": 0, "deleted": 0, "skipped": 0}
        assert (await ctx.repositories.fruit_varieties.get_by_id("11"))["nameEn"] == "Bearss"

    @pytest.mark.asyncio
    async def test_row_without_fruit_is_skipped(
        self, ctx: CatalogContext, lime: dict, layouts: dict, varieties: StaticSource
    ):
        varieties.set(
            "Fruta",
            [
                self.row(layouts, id="12", fruit="", nameEn="Persian", nameEs="Persa"),
                self.row(layouts, id="13", fruit="Lime", nameEn="Key", nameEs="Key"),
            ],
        )

        outcome = await self.reconciler(ctx, layouts, varieties).run()

        assert outcome.ok
        assert outcome.result.to_dict() == {"added": 1, "updated": 0, "deleted": 0, "skipped": 1}
        assert await ctx.repositories.fruit_varieties.get_by_id("12") is None
        assert (await ctx.repositories.fruit_varieties.get_by_id("13"))["fruitId"] == lime["id"]

    @pytest.mark.asyncio
    async def test_unknown_fruit_still_aborts(
        self, ctx: CatalogContext, lime: dict, layouts: dict, varieties: StaticSource
    ):
        varieties.set("Fruta", [self.row(layouts, id="12", fruit="Kiwi", nameEn="Hayward", nameEs="Hayward")])

        outcome = await self.reconciler(ctx, layouts, varieties).run()

        assert outcome.error.code == "SYNC_UNRESOLVED_REFERENCE"


class TestSyncCatalog:
    """Tests for entity selection and run wiring."""

    def test_select_entities_orders_by_dependency(self):
        assert select_entities(["prices", "fruits"]) == ["fruits", "prices"]
        assert select_entities(None) == list(SYNC_ORDER)

    def test_select_entities_rejects_unknown(self):
        with pytest.raises(ValidationError) as exc_info:
            select_entities(["fruits", "colors"])

        assert exc_info.value.code == "SYNC_UNKNOWN_ENTITY"

    @pytest.mark.asyncio
    async def test_start_row_applies_to_first_entity(
        self, ctx: CatalogContext, source: StaticSource, mexico: dict
    ):
        await sync_catalog(ctx, entities=["fruit_categories", "presentation_categories"], source=source)
        seen: list[tuple[str, int]] = []

        await sync_catalog(
            ctx,
            entities=["presentation_categories", "fruit_categories"],
            start_row=1,
            source=source,
            on_checkpoint=lambda entity, row: seen.append((entity, row)),
        )

        assert seen == [
            ("fruit_categories", 1),
            ("presentation_categories", 0),
            ("presentation_categories", 1),
        ]

    @pytest.mark.asyncio
    async def test_default_source_is_closed(self, ctx: CatalogContext):
        google_source = MagicMock()
        google_source.fetch = AsyncMock(return_value=SourceSnapshot(fields=()))
        google_source.close = AsyncMock()

        with patch("catalog.sync.service.GoogleSheetSource", return_value=google_source):
            outcomes = await sync_catalog(ctx, entities=["fruit_categories"])

        assert outcomes[0].ok
        google_source.close.assert_awaited_once()
