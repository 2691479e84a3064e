"""Product and ProductDocument repositories."""

from typing import Any, Mapping

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.sql.elements import ColumnElement

from catalog.models import FruitVariety, Presentation, Product, ProductDocument
from catalog.infra.cache import CacheKey
from catalog.repositories import specs
from catalog.repositories.base import EntityRepository, Reference
from catalog.repositories.fruit import full_name_expression


def variety_or_presentation_clause(query: str, variety_col: Any, presentation_col: Any) -> ColumnElement[bool] | None:
    """Every term must equal either the variety id or the presentation id."""
    terms = query.split()
    if not terms:
        return None
    return and_(*[or_(variety_col == term, presentation_col == term) for term in terms])


class ProductRepository(EntityRepository[Product]):
    """Products are unique per (variety, presentation).

    Default list order depends on the filter: by presentation name within a
    variety, by variety full name within a presentation, by id otherwise.
    """

    model = Product
    spec = specs.PRODUCT
    columns = {
        "descriptionEs": "description_es",
        "descriptionEn": "description_en",
        "shelfLifeEs": "shelf_life_es",
        "shelfLifeEn": "shelf_life_en",
        "picture": "picture",
    }
    references = (
        Reference("fruitVariety", "variety_id", "fruit_varieties"),
        Reference("presentation", "presentation_id", "presentations"),
    )
    unique_together = (("variety_id", "presentation_id"),)
    filters = frozenset({"query", "search", "id", "fruitVariety", "presentation"})
    sortable = {"id": "id", "description": "description_{locale}", "shelfLife": "shelf_life_{locale}"}
    dependents = (specs.PRODUCT_DOCUMENT, specs.PRICE)

    async def get_by_pair(
        self,
        variety_id: str,
        presentation_id: str,
        locale: str | None = None,
    ) -> dict[str, Any] | None:
        """The product combining a variety and a presentation, if any."""
        locale = self._locale(locale)
        return await self._cached_one(
            self._key(locale, fruitVariety=variety_id, presentation=presentation_id),
            locale,
            Product.variety_id == variety_id,
            Product.presentation_id == presentation_id,
        )

    def _filter_clause(self, name: str, value: Any) -> ColumnElement[bool] | None:
        if name == "query":
            return variety_or_presentation_clause(
                str(value or ""), Product.variety_id, Product.presentation_id
            )
        if name == "search":
            text = str(value or "").strip()
            if not text:
                return None
            pattern = f"%{text}%"
            locales = self.settings.supported_locales
            return or_(
                Product.variety.has(or_(*[full_name_expression(code).ilike(pattern) for code in locales])),
                Product.presentation.has(
                    or_(*[getattr(Presentation, f"name_{code}").ilike(pattern) for code in locales])
                ),
            )
        return super()._filter_clause(name, value)

    def _default_order(self, stmt: Select, filter: Mapping[str, Any], locale: str, asc: bool) -> Select:
        if "fruitVariety" in filter:
            expr = (
                select(getattr(Presentation, f"name_{locale}"))
                .where(Presentation.id == Product.presentation_id)
                .scalar_subquery()
            )
        elif "presentation" in filter:
            expr = (
                select(full_name_expression(locale))
                .where(FruitVariety.id == Product.variety_id)
                .scalar_subquery()
            )
        else:
            expr = Product.id
        return stmt.order_by(expr.asc() if asc else expr.desc(), Product.id)

    def _cache_patterns(self, values: Mapping[str, Any]) -> list[str]:
        patterns = super()._cache_patterns(values)
        patterns.append(
            CacheKey.family(
                self.spec.name,
                fruitVariety=values.get("variety_id"),
                presentation=values.get("presentation_id"),
            )
        )
        return patterns


class ProductDocumentRepository(EntityRepository[ProductDocument]):
    model = ProductDocument
    spec = specs.PRODUCT_DOCUMENT
    columns = {
        "nameEs": "name_es",
        "nameEn": "name_en",
        "urlEs": "url_es",
        "urlEn": "url_en",
    }
    references = (Reference("product", "product_id", "products"),)
    filters = frozenset({"query", "id", "product"})
    sortable = {"id": "id", "name": "name_{locale}"}
    dependents = (specs.PRODUCT, specs.PRICE)
