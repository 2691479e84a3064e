"""Price and Harvest repositories.

Both are keyed by composite natural keys rather than names:
prices by (product, country, date), harvests by (variety, country, month).
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from sqlalchemy import Select, and_
from sqlalchemy.sql.elements import ColumnElement

from catalog.core.errors import ValidationError
from catalog.infra.cache import CacheKey
from catalog.models import FruitVariety, Harvest, Price, Product
from catalog.repositories import specs
from catalog.repositories.base import EntityRepository, Reference, as_list
from catalog.repositories.product import variety_or_presentation_clause


def _invalid(field: str, value: Any, expected: str) -> ValidationError:
    return ValidationError(
        f"Invalid {field}: {value!r} (expected {expected})",
        code="CATALOG_INVALID_FIELD",
        field=field,
        value=value,
    )


def to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise _invalid("date", value, "ISO date") from None


def to_decimal(field: str, value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise _invalid(field, value, "number") from None


TRUE_WORDS = frozenset({"true", "1", "yes"})
FALSE_WORDS = frozenset({"false", "0", "no", ""})


def to_bool(field: str, value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
    raise _invalid(field, value, "boolean")


class PriceRepository(EntityRepository[Price]):
    """Prices sort newest first by default."""

    model = Price
    spec = specs.PRICE
    columns = {
        "price": "price",
        "drums": "drums",
        "volume": "volume",
        "organic": "organic",
        "date": "date",
    }
    references = (
        Reference("product", "product_id", "products"),
        Reference("country", "country_id", "countries", required=False, nullable=True),
    )
    required = ("price", "date")
    unique_together = (("product_id", "country_id", "date"),)
    filters = frozenset({"query", "product", "country", "year"})
    sortable = {"id": "id", "date": "date", "price": "price"}

    async def get_one(
        self,
        product_id: str,
        country_id: str | None,
        on: date | str,
        locale: str | None = None,
    ) -> dict[str, Any] | None:
        """Price of a product in a country (None for global) on a date."""
        locale = self._locale(locale)
        on = to_date(on)
        country_clause = Price.country_id.is_(None) if country_id is None else Price.country_id == country_id
        return await self._cached_one(
            self._key(locale, product=product_id, country=country_id or "", date=on),
            locale,
            Price.product_id == product_id,
            country_clause,
            Price.date == on,
        )

    def _coerce(self, attr: str, value: Any) -> Any:
        if attr == "organic":
            return to_bool(attr, value)
        value = super()._coerce(attr, value)
        if value is None:
            return None
        if attr == "date":
            return to_date(value)
        if attr in ("price", "volume"):
            return to_decimal(attr, value)
        if attr == "drums":
            try:
                return int(value)
            except (TypeError, ValueError):
                raise _invalid(attr, value, "integer") from None
        return value

    def _filter_clause(self, name: str, value: Any) -> ColumnElement[bool] | None:
        if name == "query":
            clause = variety_or_presentation_clause(
                str(value or ""), Product.variety_id, Product.presentation_id
            )
            return Price.product.has(clause) if clause is not None else None
        if name == "year":
            year = int(value)
            return and_(Price.date >= date(year, 1, 1), Price.date <= date(year, 12, 31))
        return super()._filter_clause(name, value)

    def _default_order(self, stmt: Select, filter: Mapping[str, Any], locale: str, asc: bool) -> Select:
        return stmt.order_by(Price.date.desc(), Price.id)

    def _cache_patterns(self, values: Mapping[str, Any]) -> list[str]:
        patterns = super()._cache_patterns(values)
        patterns.append(
            CacheKey.family(
                self.spec.name,
                product=values.get("product_id"),
                country=values.get("country_id") or "",
                date=values.get("date"),
            )
        )
        return patterns


class HarvestRepository(EntityRepository[Harvest]):
    """Harvest months sort January first by default."""

    model = Harvest
    spec = specs.HARVEST
    columns = {"month": "month", "organic": "organic"}
    references = (
        Reference("fruitVariety", "variety_id", "fruit_varieties"),
        Reference("country", "country_id", "countries"),
    )
    required = ("month",)
    unique_together = (("variety_id", "country_id", "month"),)
    filters = frozenset({"fruitVariety", "fruit", "country", "month"})
    sortable = {"id": "id", "month": "month"}

    async def get_one(
        self,
        variety_id: str,
        country_id: str,
        month: int,
        locale: str | None = None,
    ) -> dict[str, Any] | None:
        """Harvest entry of a variety in a country for one month."""
        locale = self._locale(locale)
        return await self._cached_one(
            self._key(locale, fruitVariety=variety_id, country=country_id, month=month),
            locale,
            Harvest.variety_id == variety_id,
            Harvest.country_id == country_id,
            Harvest.month == month,
        )

    def _coerce(self, attr: str, value: Any) -> Any:
        value = super()._coerce(attr, value)
        if attr == "month" and value is not None:
            try:
                month = int(value)
            except (TypeError, ValueError):
                raise _invalid(attr, value, "1-12") from None
            if not 1 <= month <= 12:
                raise _invalid(attr, value, "1-12")
            return month
        if attr == "organic":
            return to_bool(attr, value)
        return value

    def _filter_clause(self, name: str, value: Any) -> ColumnElement[bool] | None:
        if name == "fruit":
            return Harvest.variety.has(FruitVariety.fruit_id.in_(as_list(value)))
        if name == "month":
            return Harvest.month.in_([int(m) for m in as_list(value)])
        return super()._filter_clause(name, value)

    def _default_order(self, stmt: Select, filter: Mapping[str, Any], locale: str, asc: bool) -> Select:
        return stmt.order_by(Harvest.month.asc() if asc else Harvest.month.desc(), Harvest.id)

    def _cache_patterns(self, values: Mapping[str, Any]) -> list[str]:
        patterns = super()._cache_patterns(values)
        patterns.append(
            CacheKey.family(
                self.spec.name,
                fruitVariety=values.get("variety_id"),
                country=values.get("country_id"),
                month=values.get("month"),
            )
        )
        return patterns
