"""Entity repositories and their registry."""

from typing import TYPE_CHECKING

from catalog.repositories.base import EntityRepository, NamedEntityRepository, Page, Reference
from catalog.repositories.category import (
    CountryRepository,
    FruitCategoryRepository,
    PresentationCategoryRepository,
)
from catalog.repositories.fruit import FruitRepository, FruitVarietyRepository
from catalog.repositories.presentation import PresentationRepository
from catalog.repositories.price import HarvestRepository, PriceRepository
from catalog.repositories.product import ProductDocumentRepository, ProductRepository

if TYPE_CHECKING:
    from catalog.core.context import CatalogContext


class Repositories:
    """One repository per entity, sharing a CatalogContext.

    References between entities are resolved by attribute name through
    get(), so repositories never import each other's instances.
    """

    def __init__(self, ctx: "CatalogContext") -> None:
        self.fruit_categories = FruitCategoryRepository(ctx)
        self.presentation_categories = PresentationCategoryRepository(ctx)
        self.countries = CountryRepository(ctx)
        self.fruits = FruitRepository(ctx)
        self.fruit_varieties = FruitVarietyRepository(ctx)
        self.presentations = PresentationRepository(ctx)
        self.products = ProductRepository(ctx)
        self.product_documents = ProductDocumentRepository(ctx)
        self.prices = PriceRepository(ctx)
        self.harvests = HarvestRepository(ctx)

    def get(self, name: str) -> EntityRepository:
        """Repository registered under name.

        Raises:
            KeyError: If no repository has that name
        """
        repo = getattr(self, name, None)
        if not isinstance(repo, EntityRepository):
            raise KeyError(f"Unknown repository: {name}")
        return repo


__all__ = [
    "EntityRepository",
    "NamedEntityRepository",
    "Page",
    "Reference",
    "Repositories",
    "CountryRepository",
    "FruitCategoryRepository",
    "FruitRepository",
    "FruitVarietyRepository",
    "HarvestRepository",
    "PresentationCategoryRepository",
    "PresentationRepository",
    "PriceRepository",
    "ProductDocumentRepository",
    "ProductRepository",
]
