"""Per-entity sync handlers.

Each handler maps rows of one sheet layout to repository input. Parents
are looked up by English name in entities reconciled earlier in the run.
A missing mandatory parent (fruit category, fruit, presentation category)
aborts the run; rows whose optional parents are missing are skipped.
"""

from typing import Any, ClassVar, Hashable

from catalog.core.context import CatalogContext
from catalog.core.errors import UnresolvedReferenceError
from catalog.infra.logging import get_logger
from catalog.repositories import EntityRepository, Page
from catalog.sources.layout import SheetLayout, month_field
from catalog.sources.snapshot import cell_number, cell_text, drive_image_url, excel_serial_to_date
from catalog.sync.reconciler import RowInput

logger = get_logger(__name__)

LOOKUP_LOCALE = "en"
# Sheet row ids are short; longer ids were generated for inline creations
SHEET_ID_MAX_LENGTH = 4
SHELF_LIFE_MAX_LENGTH = 100

# Harvest sheet spellings that differ from the catalog's variety names
HARVEST_VARIETY_ALIASES = {"Persian /Tahiti": "Persian"}


def _unresolved(entity: str, field: str, value: str) -> UnresolvedReferenceError:
    return UnresolvedReferenceError(
        f"{entity} row references unknown {field}: {value!r}",
        entity=entity,
        field=field,
        value=value,
    )


class BaseSyncHandler:
    """Shared plumbing: repository access and default write operations."""

    name: ClassVar[str]
    repository: ClassVar[str]
    prune: ClassVar[bool] = True

    def __init__(self, ctx: CatalogContext, layout: SheetLayout) -> None:
        self.ctx = ctx
        self.layout = layout

    @property
    def repo(self) -> EntityRepository:
        return self.ctx.repositories.get(self.repository)

    async def seed(self) -> dict[Hashable, str]:
        return {entity_id: entity_id for entity_id in await self.repo.existing_ids()}

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        raise NotImplementedError

    def row_keys(self, row: dict[str, Any]) -> list[Hashable]:
        key = cell_text(row.get("id"))
        return [key] if key else []

    async def lookup(self, item: RowInput) -> str | None:
        return None

    async def create(self, item: RowInput) -> str:
        view = await self.repo.create(item.payload)
        return view["id"]

    async def update(self, entity_id: str, item: RowInput) -> None:
        await self.repo.update({**item.payload, "id": entity_id})

    async def delete(self, entity_id: str) -> None:
        await self.repo.delete(entity_id)

    def _skip(self, reason: str, **context: Any) -> list[RowInput]:
        logger.debug("Row skipped", entity=self.name, reason=reason, **context)
        return []


# =============================================================================
# Categories
# =============================================================================


class CategoryHandler(BaseSyncHandler):
    """Bilingual name pairs keyed by English name."""

    async def seed(self) -> dict[Hashable, str]:
        return await self.repo.existing_names(LOOKUP_LOCALE)

    def row_keys(self, row: dict[str, Any]) -> list[Hashable]:
        key = cell_text(row.get("nameEn"))
        return [key] if key else []

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        name_es = cell_text(row.get("nameEs"))
        name_en = cell_text(row.get("nameEn"))
        if not name_es or not name_en:
            return []
        return [RowInput(key=name_en, payload={"nameEs": name_es, "nameEn": name_en})]


class FruitCategoryHandler(CategoryHandler):
    name = "fruit_categories"
    repository = "fruit_categories"


class PresentationCategoryHandler(CategoryHandler):
    name = "presentation_categories"
    repository = "presentation_categories"


# =============================================================================
# Fruits and varieties
# =============================================================================


class FruitHandler(BaseSyncHandler):
    """Fruits keyed by English name.

    The Fruta sheet has one row per variety, so a fruit name repeats; rows
    that describe a variety leave the fruit's description and picture alone.
    """

    name = "fruits"
    repository = "fruits"

    async def seed(self) -> dict[Hashable, str]:
        return await self.repo.existing_names(LOOKUP_LOCALE)

    def row_keys(self, row: dict[str, Any]) -> list[Hashable]:
        key = cell_text(row.get("nameEn"))
        return [key] if key else []

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        name_es = cell_text(row.get("nameEs"))
        name_en = cell_text(row.get("nameEn"))
        if not name_es or not name_en:
            return []

        category_name = cell_text(row.get("category"))
        category = await self.ctx.repositories.fruit_categories.get_by_name(category_name, LOOKUP_LOCALE)
        if category is None:
            raise _unresolved("fruit", "category", category_name)

        payload: dict[str, Any] = {
            "nameEs": name_es,
            "nameEn": name_en,
            "category": category["id"],
        }
        if not cell_text(row.get("varietyEs")) and not cell_text(row.get("varietyEn")):
            payload["descriptionEs"] = cell_text(row.get("descriptionEs"))
            payload["descriptionEn"] = cell_text(row.get("descriptionEn"))
            payload["picture"] = drive_image_url(cell_text(row.get("picture")))
        return [RowInput(key=name_en, payload=payload)]


class FruitVarietyHandler(BaseSyncHandler):
    """Varieties keyed by sheet row id.

    Only sheet ids take part in the sweep; varieties created inline by the
    product and harvest handlers carry generated ids and are left alone.
    """

    name = "fruit_varieties"
    repository = "fruit_varieties"

    async def seed(self) -> dict[Hashable, str]:
        return {
            entity_id: entity_id
            for entity_id in await self.repo.existing_ids()
            if len(entity_id) <= SHEET_ID_MAX_LENGTH
        }

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        sheet_id = cell_text(row.get("id"))
        if not sheet_id:
            return []

        fruit_name = cell_text(row.get("fruit"))
        if not fruit_name:
            return self._skip("no fruit", id=sheet_id)
        fruit = await self.ctx.repositories.fruits.get_by_name(fruit_name, LOOKUP_LOCALE)
        if fruit is None:
            raise _unresolved("fruit variety", "fruit", fruit_name)

        name_es = cell_text(row.get("nameEs"))
        name_en = cell_text(row.get("nameEn"))
        payload: dict[str, Any] = {"id": sheet_id, "fruit": fruit["id"]}
        if not name_es and not name_en:
            # The plain fruit: its variety takes the fruit's names
            payload["nameEs"] = fruit["nameEs"]
            payload["nameEn"] = fruit["nameEn"]
        else:
            payload["nameEs"] = name_es or name_en
            payload["nameEn"] = name_en or name_es
            payload["descriptionEs"] = cell_text(row.get("descriptionEs"))
            payload["descriptionEn"] = cell_text(row.get("descriptionEn"))
            payload["picture"] = drive_image_url(cell_text(row.get("picture")))
        return [RowInput(key=sheet_id, payload=payload)]

    async def create(self, item: RowInput) -> str:
        varieties = self.ctx.repositories.fruit_varieties
        duplicate = await varieties.get_by_name(
            item.payload["nameEn"], item.payload["fruit"], LOOKUP_LOCALE
        )
        if duplicate is not None and duplicate["id"] != item.key:
            # A same-name twin (inline-created or renumbered in the sheet)
            # would collide on (fruit, name); the sheet's row replaces it
            logger.info(
                "Replacing variety twin",
                variety_id=duplicate["id"],
                sheet_id=item.key,
            )
            await varieties.delete(duplicate["id"])
        return await super().create(item)


# =============================================================================
# Presentations and products
# =============================================================================


class PresentationHandler(BaseSyncHandler):
    name = "presentations"
    repository = "presentations"

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        sheet_id = cell_text(row.get("id"))
        name_en = cell_text(row.get("nameEn"))
        if not sheet_id or not name_en:
            return []

        category_name = cell_text(row.get("category"))
        category = await self.ctx.repositories.presentation_categories.get_by_name(
            category_name, LOOKUP_LOCALE
        )
        if category is None:
            raise _unresolved("presentation", "category", category_name)

        return [
            RowInput(
                key=sheet_id,
                payload={
                    "id": sheet_id,
                    "nameEs": cell_text(row.get("nameEs")) or name_en,
                    "nameEn": name_en,
                    "descriptionEs": cell_text(row.get("descriptionEs")),
                    "descriptionEn": cell_text(row.get("descriptionEn")),
                    "picture": drive_image_url(cell_text(row.get("picture"))),
                    "category": category["id"],
                },
            )
        ]


def _document(row: dict[str, Any], prefix: str) -> dict[str, Any] | None:
    url_es = cell_text(row.get(f"{prefix}UrlEs"))
    url_en = cell_text(row.get(f"{prefix}UrlEn"))
    if not url_es and not url_en:
        return None
    return {
        "nameEs": cell_text(row.get(f"{prefix}NameEs")),
        "nameEn": cell_text(row.get(f"{prefix}NameEn")),
        "urlEs": url_es,
        "urlEn": url_en,
    }


class ProductHandler(BaseSyncHandler):
    """Products keyed by sheet row id.

    Documents belong to the product row: they are dropped and recreated
    on every update.
    """

    name = "products"
    repository = "products"

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        sheet_id = cell_text(row.get("id"))
        if not sheet_id:
            return []

        repos = self.ctx.repositories
        fruit_name = cell_text(row.get("fruit"))
        if not fruit_name:
            return self._skip("no fruit", id=sheet_id)
        fruit = await repos.fruits.get_by_name(fruit_name, LOOKUP_LOCALE)
        if fruit is None:
            return self._skip("unknown fruit", id=sheet_id, fruit=fruit_name)

        variety_name = cell_text(row.get("fruitVarietyEn")) or fruit["nameEn"]
        variety = await repos.fruit_varieties.get_by_name(variety_name, fruit["id"], LOOKUP_LOCALE)
        if variety is None:
            variety = await repos.fruit_varieties.create(
                {
                    "nameEn": variety_name,
                    "nameEs": cell_text(row.get("fruitVarietyEs")) or fruit["nameEs"],
                    "fruit": fruit["id"],
                }
            )
            logger.info("Variety created inline", variety_id=variety["id"], name=variety_name)

        presentation_name = cell_text(row.get("presentation"))
        presentation = await repos.presentations.get_by_name(presentation_name, LOOKUP_LOCALE)
        if presentation is None:
            return self._skip("unknown presentation", id=sheet_id, presentation=presentation_name)

        documents = [doc for doc in (_document(row, "spec"), _document(row, "mds")) if doc]
        payload = {
            "id": sheet_id,
            "fruitVariety": variety["id"],
            "presentation": presentation["id"],
            "descriptionEs": cell_text(row.get("descriptionEs")),
            "descriptionEn": cell_text(row.get("descriptionEn")),
            "shelfLifeEs": cell_text(row.get("shelfLifeEs"))[:SHELF_LIFE_MAX_LENGTH],
            "shelfLifeEn": cell_text(row.get("shelfLifeEn"))[:SHELF_LIFE_MAX_LENGTH],
            "picture": drive_image_url(cell_text(row.get("picture"))),
        }
        return [RowInput(key=sheet_id, payload=payload, extra={"documents": documents})]

    async def create(self, item: RowInput) -> str:
        product_id = await super().create(item)
        await self._create_documents(product_id, item)
        return product_id

    async def update(self, entity_id: str, item: RowInput) -> None:
        documents = self.ctx.repositories.product_documents
        for doc in await documents.list({"product": entity_id}, Page(num=-1)):
            await documents.delete(doc["id"])
        await super().update(entity_id, item)
        await self._create_documents(entity_id, item)

    async def _create_documents(self, product_id: str, item: RowInput) -> None:
        documents = self.ctx.repositories.product_documents
        for doc in item.extra.get("documents", []):
            await documents.create({**doc, "product": product_id})


# =============================================================================
# Prices and harvests (history, never pruned)
# =============================================================================


class PriceHandler(BaseSyncHandler):
    """Prices keyed by (product, country, date).

    The fruit label reads "<Fruit> <Variety...>"; a label with a single
    word names the plain fruit variety.
    """

    name = "prices"
    repository = "prices"
    prune = False

    async def seed(self) -> dict[Hashable, str]:
        return {}

    def row_keys(self, row: dict[str, Any]) -> list[Hashable]:
        return []

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        repos = self.ctx.repositories
        price = cell_number(row.get("price"))
        if not price:
            return []

        presentation_name = cell_text(row.get("presentation"))
        presentation = await repos.presentations.get_by_name(presentation_name, LOOKUP_LOCALE)
        if presentation is None:
            return self._skip("unknown presentation", presentation=presentation_name)

        on = excel_serial_to_date(row.get("date"))
        if on is None:
            return self._skip("no date", presentation=presentation_name)

        label = cell_text(row.get("fruit"))
        fruit_name, _, variety_name = label.partition(" ")
        fruit = await repos.fruits.get_by_name(fruit_name, LOOKUP_LOCALE) if fruit_name else None
        if fruit is None:
            return self._skip("unknown fruit", fruit=label)
        variety_name = variety_name.strip() or fruit["nameEn"]
        variety = await repos.fruit_varieties.get_by_name(variety_name, fruit["id"], LOOKUP_LOCALE)
        if variety is None:
            return self._skip("unknown variety", fruit=label)

        country_name = cell_text(row.get("country"))
        country = await repos.countries.get_by_name(country_name, LOOKUP_LOCALE) if country_name else None
        if country is None:
            return self._skip("unknown country", country=country_name)

        product = await repos.products.get_by_pair(variety["id"], presentation["id"], LOOKUP_LOCALE)
        if product is None:
            return self._skip("unknown product", fruit=label, presentation=presentation_name)

        drums = cell_number(row.get("drums"))
        volume = cell_number(row.get("volume"))
        payload = {
            "product": product["id"],
            "country": country["id"],
            "date": on,
            "price": price,
            "drums": int(drums) if drums is not None else None,
            "volume": volume,
            "organic": cell_text(row.get("organic")).lower() == "organic",
        }
        return [RowInput(key=(product["id"], country["id"], on.isoformat()), payload=payload)]

    async def lookup(self, item: RowInput) -> str | None:
        payload = item.payload
        existing = await self.ctx.repositories.prices.get_one(
            payload["product"], payload["country"], payload["date"], LOOKUP_LOCALE
        )
        return existing["id"] if existing else None


class HarvestHandler(BaseSyncHandler):
    """Harvest months keyed by (variety, country, month).

    A row carries twelve month flags and yields one record per flagged
    month. Varieties missing from the catalog are created inline.
    """

    name = "harvests"
    repository = "harvests"
    prune = False

    async def seed(self) -> dict[Hashable, str]:
        return {}

    def row_keys(self, row: dict[str, Any]) -> list[Hashable]:
        return []

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        repos = self.ctx.repositories
        country_name = cell_text(row.get("country"))
        fruit_name = cell_text(row.get("fruit"))
        if not country_name or not fruit_name:
            return []

        country = await repos.countries.get_by_name(country_name, LOOKUP_LOCALE)
        if country is None:
            return self._skip("unknown country", country=country_name)
        fruit = await repos.fruits.get_by_name(fruit_name, LOOKUP_LOCALE)
        if fruit is None:
            return self._skip("unknown fruit", fruit=fruit_name)

        months = [m for m in range(1, 13) if cell_number(row.get(month_field(m))) == 1]
        if not months:
            return []

        variety_name = cell_text(row.get("variety")) or fruit["nameEn"]
        variety_name = HARVEST_VARIETY_ALIASES.get(variety_name, variety_name)
        variety = await repos.fruit_varieties.get_by_name(variety_name, fruit["id"], LOOKUP_LOCALE)
        if variety is None:
            variety = await repos.fruit_varieties.create(
                {"nameEs": variety_name, "nameEn": variety_name, "fruit": fruit["id"]}
            )
            logger.info("Variety created inline", variety_id=variety["id"], name=variety_name)

        organic = cell_number(row.get("organic")) == 1
        return [
            RowInput(
                key=(variety["id"], country["id"], month),
                payload={
                    "fruitVariety": variety["id"],
                    "country": country["id"],
                    "month": month,
                    "organic": organic,
                },
            )
            for month in months
        ]

    async def lookup(self, item: RowInput) -> str | None:
        payload = item.payload
        existing = await self.ctx.repositories.harvests.get_one(
            payload["fruitVariety"], payload["country"], payload["month"], LOOKUP_LOCALE
        )
        return existing["id"] if existing else None


HANDLERS: dict[str, type[BaseSyncHandler]] = {
    handler.name: handler
    for handler in (
        FruitCategoryHandler,
        PresentationCategoryHandler,
        FruitHandler,
        FruitVarietyHandler,
        PresentationHandler,
        ProductHandler,
        PriceHandler,
        HarvestHandler,
    )
}

__all__ = [
    "HANDLERS",
    "BaseSyncHandler",
    "FruitCategoryHandler",
    "FruitHandler",
    "FruitVarietyHandler",
    "HarvestHandler",
    "PresentationCategoryHandler",
    "PresentationHandler",
    "PriceHandler",
    "ProductHandler",
]
