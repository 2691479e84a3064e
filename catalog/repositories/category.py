"""Repositories for the flat bilingual lookups: categories and countries."""

from catalog.models import Country, FruitCategory, PresentationCategory
from catalog.repositories import specs
from catalog.repositories.base import NamedEntityRepository

_NAME_COLUMNS = {"nameEs": "name_es", "nameEn": "name_en"}


class FruitCategoryRepository(NamedEntityRepository[FruitCategory]):
    model = FruitCategory
    spec = specs.FRUIT_CATEGORY
    columns = _NAME_COLUMNS
    required = ("nameEs", "nameEn")
    unique_together = (("name_en",),)
    filters = frozenset({"query", "id", "exclude"})
    dependents = (
        specs.FRUIT,
        specs.FRUIT_VARIETY,
        specs.PRODUCT,
        specs.PRICE,
        specs.HARVEST,
    )


class PresentationCategoryRepository(NamedEntityRepository[PresentationCategory]):
    model = PresentationCategory
    spec = specs.PRESENTATION_CATEGORY
    columns = _NAME_COLUMNS
    required = ("nameEs", "nameEn")
    unique_together = (("name_en",),)
    filters = frozenset({"query", "id", "exclude"})
    dependents = (specs.PRESENTATION, specs.PRODUCT, specs.PRICE)


class CountryRepository(NamedEntityRepository[Country]):
    model = Country
    spec = specs.COUNTRY
    columns = {**_NAME_COLUMNS, "dialCode": "dial_code"}
    required = ("nameEs", "nameEn")
    filters = frozenset({"query", "id"})
    dependents = (specs.PRICE, specs.HARVEST)
