"""Fruit and FruitVariety repositories."""

from typing import Any, Mapping

from sqlalchemy import Select, case, select
from sqlalchemy.sql.elements import ColumnElement

from catalog.models import Fruit, FruitVariety
from catalog.repositories import specs
from catalog.repositories.base import EntityRepository, NamedEntityRepository, Reference, as_list


def full_name_expression(locale: str) -> ColumnElement[str]:
    """SQL rendering of the derived variety full name for one locale.

    Must be evaluated where fruit_varieties is in scope; the fruit name is
    a correlated scalar subquery so no join is needed.
    """
    fruit_name = (
        select(getattr(Fruit, f"name_{locale}"))
        .where(Fruit.id == FruitVariety.fruit_id)
        .scalar_subquery()
    )
    variety_name = getattr(FruitVariety, f"name_{locale}")
    return case(
        (fruit_name == variety_name, variety_name),
        else_=fruit_name + " " + variety_name,
    )


class FruitRepository(NamedEntityRepository[Fruit]):
    model = Fruit
    spec = specs.FRUIT
    columns = {
        "nameEs": "name_es",
        "nameEn": "name_en",
        "descriptionEs": "description_es",
        "descriptionEn": "description_en",
        "picture": "picture",
    }
    references = (Reference("category", "category_id", "fruit_categories"),)
    required = ("nameEs", "nameEn")
    unique_together = (("name_en",),)
    filters = frozenset({"query", "id", "category"})
    sortable = {"id": "id", "name": "name_{locale}", "description": "description_{locale}"}
    dependents = (specs.FRUIT_VARIETY, specs.PRODUCT, specs.PRICE, specs.HARVEST)


class FruitVarietyRepository(EntityRepository[FruitVariety]):
    """Varieties are looked up by name within their fruit.

    Lists sort by the derived full name unless told otherwise.
    """

    model = FruitVariety
    spec = specs.FRUIT_VARIETY
    columns = {
        "nameEs": "name_es",
        "nameEn": "name_en",
        "descriptionEs": "description_es",
        "descriptionEn": "description_en",
        "picture": "picture",
    }
    references = (Reference("fruit", "fruit_id", "fruits"),)
    required = ("nameEs", "nameEn")
    unique_together = (("fruit_id", "name_en"),)
    filters = frozenset({"query", "id", "fruit", "category"})
    sortable = {"id": "id", "name": "name_{locale}", "description": "description_{locale}"}
    dependents = (specs.PRODUCT, specs.PRODUCT_DOCUMENT, specs.PRICE, specs.HARVEST)

    async def get_by_name(
        self,
        name: str,
        fruit_id: str,
        locale: str | None = None,
    ) -> dict[str, Any] | None:
        """Variety of fruit_id whose name in locale equals name."""
        locale = self._locale(locale)
        return await self._cached_one(
            self._key(locale, name=name, fruit=fruit_id),
            locale,
            getattr(FruitVariety, f"name_{locale}") == name,
            FruitVariety.fruit_id == fruit_id,
        )

    def _filter_clause(self, name: str, value: Any) -> ColumnElement[bool] | None:
        if name == "category":
            return FruitVariety.fruit.has(Fruit.category_id.in_(as_list(value)))
        return super()._filter_clause(name, value)

    def _sort_expression(self, ord: str, locale: str) -> Any:
        if ord == "fullName":
            return full_name_expression(locale)
        return super()._sort_expression(ord, locale)

    def _default_order(self, stmt: Select, filter: Mapping[str, Any], locale: str, asc: bool) -> Select:
        expr = full_name_expression(locale)
        return stmt.order_by(expr.asc() if asc else expr.desc(), FruitVariety.id)
